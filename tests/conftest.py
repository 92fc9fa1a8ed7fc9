"""
Shared pytest fixtures for all tests.
"""

import pytest
from pathlib import Path

# Add the repo root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from tilescript.authoring import TileAuthor
from tilescript.config import Settings
from tilescript.core.scene import SceneSnapshot
from tilescript.db.scene_store import SceneStore


# =============================================================================
# Scene Fixtures
# =============================================================================

@pytest.fixture
def empty_scene():
    """Snapshot of a scene with no tags and no tiles."""
    return SceneSnapshot.of(scene_id="scene1")


@pytest.fixture
def busy_scene():
    """
    Snapshot of a scene that already holds authored tiles.

    Contains:
    - tags EMTorch, EMTorch2, EMDoorSwitch
    - tiles "Switch 1", "Switch 4", "Trap 2"
    """
    return SceneSnapshot.of(
        scene_id="scene1",
        tags={"EMTorch", "EMTorch2", "EMDoorSwitch"},
        tile_names=["Switch 1", "Switch 4", "Trap 2"],
    )


@pytest.fixture
def settings():
    """Stock authoring settings."""
    return Settings()


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def db_path(tmp_path):
    """Temporary database path for testing."""
    return tmp_path / "test_tiles.db"


@pytest.fixture
def scene_store(db_path):
    """Fresh scene store with schema initialized."""
    store = SceneStore(db_path)
    store.ensure_schema()
    return store


@pytest.fixture
def populated_store(scene_store):
    """
    Scene store with minimal test data loaded.

    Contains:
    - scene "dungeon" (main) and scene "vault" (teleport destination)
    - world item "blade" (a trap weapon)
    """
    from tests.fixtures.store import setup_minimal_world

    setup_minimal_world(scene_store)
    return scene_store


@pytest.fixture
def author(populated_store, settings):
    """Tile author over the populated store."""
    return TileAuthor(populated_store, settings)

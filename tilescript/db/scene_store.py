"""
Scene Store - SQLite-backed document store for scenes and their contents.

Stands in for the virtual tabletop's document database: scenes, the
documents embedded in them (tiles, lights, sounds, tokens), and the
world-level folders, items and actors combat traps need.

All JSON fields are automatically serialized/deserialized.
"""

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from ..core.scene import SceneSnapshot

logger = logging.getLogger(__name__)

DOCUMENT_KINDS = ("Tile", "AmbientLight", "AmbientSound", "Token")


class EntityNotFoundError(LookupError):
    """A scene, document, item or actor does not exist."""


class TagConflictError(RuntimeError):
    """A tag claimed by a write is already in use in the scene."""

    def __init__(self, scene_id: str, tags: Iterable[str]):
        self.scene_id = scene_id
        self.tags = sorted(tags)
        super().__init__(f"Tags already in use in scene {scene_id}: {', '.join(self.tags)}")


class SceneStore:
    """
    SQLite-backed store for scene documents.

    Tag uniqueness is checked inside the write transaction, so a caller
    that compiled against a stale snapshot gets a TagConflictError instead
    of a silent duplicate.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)

    def connect(self) -> sqlite3.Connection:
        """Create a database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def ensure_schema(self) -> None:
        """Initialize database schema from schema.sql."""
        schema_path = Path(__file__).with_name("schema.sql")
        sql = schema_path.read_text(encoding="utf-8")
        with self.connect() as conn:
            conn.executescript(sql)
            conn.commit()

    # =========================================================================
    # Scene Operations
    # =========================================================================

    def create_scene(
        self,
        name: str,
        scene_id: Optional[str] = None,
        grid_size: int = 100,
        width: float = 4000,
        height: float = 3000,
    ) -> dict:
        """Create a new scene."""
        scene_id = scene_id or new_id()
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO scenes (id, name, grid_size, width, height, flags_json, created_at)
                VALUES (?, ?, ?, ?, ?, '{}', ?)
                """,
                (scene_id, name, grid_size, width, height, _now())
            )
            conn.commit()
        return self.get_scene(scene_id)

    def get_scene(self, scene_id: str) -> Optional[dict]:
        """Get scene by ID."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM scenes WHERE id = ?",
                (scene_id,)
            ).fetchone()
        if not row:
            return None
        return _parse_scene_row(row)

    def require_scene(self, scene_id: str) -> dict:
        scene = self.get_scene(scene_id)
        if scene is None:
            raise EntityNotFoundError(f"Scene not found: {scene_id}")
        return scene

    def list_scenes(self) -> list[dict]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM scenes ORDER BY created_at").fetchall()
        return [_parse_scene_row(row) for row in rows]

    def scene_snapshot(self, scene_id: str) -> SceneSnapshot:
        """Read the scene's tags and tile names once, in a single query."""
        with self.connect() as conn:
            scene_row = conn.execute(
                "SELECT * FROM scenes WHERE id = ?",
                (scene_id,)
            ).fetchone()
            if not scene_row:
                raise EntityNotFoundError(f"Scene not found: {scene_id}")
            rows = conn.execute(
                "SELECT kind, name, tags FROM documents WHERE scene_id = ?",
                (scene_id,)
            ).fetchall()

        tags = set()
        tile_names = []
        for row in rows:
            tags.update(json_loads(row["tags"]) or [])
            if row["kind"] == "Tile":
                tile_names.append(row["name"])

        return SceneSnapshot.of(
            scene_id=scene_id,
            tags=tags,
            tile_names=tile_names,
            grid_size=scene_row["grid_size"],
            width=scene_row["width"],
            height=scene_row["height"],
        )

    def set_scene_flag(self, scene_id: str, key: str, value: Any) -> None:
        flags = self.require_scene(scene_id)["flags"]
        flags[key] = value
        self._write_scene_flags(scene_id, flags)

    def get_scene_flag(self, scene_id: str, key: str) -> Any:
        return self.require_scene(scene_id)["flags"].get(key)

    def unset_scene_flag(self, scene_id: str, key: str) -> None:
        flags = self.require_scene(scene_id)["flags"]
        if flags.pop(key, None) is not None:
            self._write_scene_flags(scene_id, flags)

    def _write_scene_flags(self, scene_id: str, flags: dict) -> None:
        with self.connect() as conn:
            conn.execute(
                "UPDATE scenes SET flags_json = ? WHERE id = ?",
                (json_dumps(flags), scene_id)
            )
            conn.commit()

    # =========================================================================
    # Document Operations
    # =========================================================================

    def create_documents(
        self,
        documents: list[dict],
        claimed_tags: Optional[dict[str, Iterable[str]]] = None,
    ) -> list[dict]:
        """
        Insert scene documents in one transaction.

        Args:
            documents: dicts with scene_id, kind, data and optional id, name, tags
            claimed_tags: scene id -> tags that must not exist in that scene yet

        Raises:
            TagConflictError: a claimed tag is already used in its scene
            EntityNotFoundError: a target scene does not exist
        """
        claimed_tags = claimed_tags or {}
        now = _now()
        ids = []

        with self.connect() as conn:
            # Hold the write lock from the tag check until commit
            conn.execute("BEGIN IMMEDIATE")
            try:
                scene_ids = {doc["scene_id"] for doc in documents} | set(claimed_tags)
                for scene_id in scene_ids:
                    exists = conn.execute(
                        "SELECT 1 FROM scenes WHERE id = ?", (scene_id,)
                    ).fetchone()
                    if not exists:
                        raise EntityNotFoundError(f"Scene not found: {scene_id}")

                for scene_id, tags in claimed_tags.items():
                    conflicts = set(tags) & _scene_tags(conn, scene_id)
                    if conflicts:
                        raise TagConflictError(scene_id, conflicts)

                for doc in documents:
                    kind = doc["kind"]
                    if kind not in DOCUMENT_KINDS:
                        raise ValueError(f"Unknown document kind: {kind}")
                    doc_id = doc.get("id") or new_id()
                    conn.execute(
                        """
                        INSERT INTO documents (id, scene_id, kind, name, data_json, tags, created_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            doc_id,
                            doc["scene_id"],
                            kind,
                            doc.get("name", ""),
                            json_dumps(doc.get("data", {})),
                            json_dumps(doc.get("tags", [])),
                            now
                        )
                    )
                    ids.append(doc_id)
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        return self.get_documents(ids)

    def create_document(
        self,
        scene_id: str,
        kind: str,
        data: dict,
        name: str = "",
        tags: Optional[list] = None,
        doc_id: Optional[str] = None,
    ) -> dict:
        """Create a single scene document."""
        [doc] = self.create_documents([{
            "id": doc_id,
            "scene_id": scene_id,
            "kind": kind,
            "name": name,
            "data": data,
            "tags": tags or [],
        }])
        return doc

    def get_document(self, doc_id: str) -> Optional[dict]:
        """Get document by ID."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM documents WHERE id = ?",
                (doc_id,)
            ).fetchone()
        if not row:
            return None
        return _parse_document_row(row)

    def get_documents(self, doc_ids: list[str]) -> list[dict]:
        """Get multiple documents by IDs, in the given order."""
        if not doc_ids:
            return []
        placeholders = ",".join("?" * len(doc_ids))
        with self.connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM documents WHERE id IN ({placeholders})",
                doc_ids
            ).fetchall()
        by_id = {row["id"]: _parse_document_row(row) for row in rows}
        return [by_id[doc_id] for doc_id in doc_ids if doc_id in by_id]

    def list_documents(self, scene_id: str, kind: Optional[str] = None) -> list[dict]:
        """Documents of a scene, optionally filtered by kind."""
        query = "SELECT * FROM documents WHERE scene_id = ?"
        params: list = [scene_id]
        if kind:
            query += " AND kind = ?"
            params.append(kind)
        query += " ORDER BY created_at, rowid"
        with self.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_parse_document_row(row) for row in rows]

    def find_by_tag(self, tag: str, scene_id: Optional[str] = None) -> list[dict]:
        """Documents carrying a tag, in one scene or across all scenes."""
        query = "SELECT * FROM documents"
        params: list = []
        if scene_id:
            query += " WHERE scene_id = ?"
            params.append(scene_id)
        with self.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            _parse_document_row(row) for row in rows
            if tag in (json_loads(row["tags"]) or [])
        ]

    def delete_document(self, doc_id: str) -> None:
        """Delete a document."""
        with self.connect() as conn:
            conn.execute("DELETE FROM documents WHERE id = ?", (doc_id,))
            conn.commit()

    # =========================================================================
    # World Operations (folders, items, actors)
    # =========================================================================

    def get_or_create_folder(self, name: str, folder_type: str = "Actor") -> dict:
        """Find a folder by name and type, creating it when missing."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM folders WHERE name = ? AND type = ?",
                (name, folder_type)
            ).fetchone()
            if row:
                return dict(row)
            folder_id = new_id()
            conn.execute(
                "INSERT INTO folders (id, name, type) VALUES (?, ?, ?)",
                (folder_id, name, folder_type)
            )
            conn.commit()
        logger.info("Created %s folder %r", folder_type, name)
        return {"id": folder_id, "name": name, "type": folder_type}

    def create_item(
        self,
        name: str,
        item_type: str = "weapon",
        data: Optional[dict] = None,
        item_id: Optional[str] = None,
    ) -> dict:
        """Create a world item."""
        item_id = item_id or new_id()
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO items (id, name, type, data_json) VALUES (?, ?, ?, ?)",
                (item_id, name, item_type, json_dumps(data or {}))
            )
            conn.commit()
        return self.get_item(item_id)

    def get_item(self, item_id: str) -> Optional[dict]:
        """Get item by ID."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM items WHERE id = ?",
                (item_id,)
            ).fetchone()
        if not row:
            return None
        return {
            "id": row["id"],
            "name": row["name"],
            "type": row["type"],
            "data": json_loads(row["data_json"]),
        }

    def create_actor(
        self,
        name: str,
        data: Optional[dict] = None,
        folder_id: Optional[str] = None,
        items: Optional[list[dict]] = None,
    ) -> dict:
        """Create an actor. Embedded items get fresh ids."""
        actor_id = new_id()
        embedded = [{**item, "id": new_id()} for item in (items or [])]
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO actors (id, name, folder_id, data_json, items_json)
                VALUES (?, ?, ?, ?, ?)
                """,
                (actor_id, name, folder_id, json_dumps(data or {}), json_dumps(embedded))
            )
            conn.commit()
        return self.get_actor(actor_id)

    def get_actor(self, actor_id: str) -> Optional[dict]:
        """Get actor by ID."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM actors WHERE id = ?",
                (actor_id,)
            ).fetchone()
        if not row:
            return None
        return {
            "id": row["id"],
            "name": row["name"],
            "folder_id": row["folder_id"],
            "data": json_loads(row["data_json"]),
            "items": json_loads(row["items_json"]),
        }

    def delete_actor(self, actor_id: str) -> None:
        """Delete an actor."""
        with self.connect() as conn:
            conn.execute("DELETE FROM actors WHERE id = ?", (actor_id,))
            conn.commit()


# =============================================================================
# Helper Functions
# =============================================================================

def new_id() -> str:
    """Generate a 16-character document id."""
    return uuid.uuid4().hex[:16]


def json_dumps(value: Any) -> str:
    """Serialize value to JSON string."""
    return json.dumps(value, ensure_ascii=True, separators=(",", ":"))


def json_loads(value: str) -> Any:
    """Deserialize JSON string to value."""
    return json.loads(value) if value else None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _scene_tags(conn: sqlite3.Connection, scene_id: str) -> set:
    rows = conn.execute(
        "SELECT tags FROM documents WHERE scene_id = ?",
        (scene_id,)
    ).fetchall()
    tags = set()
    for row in rows:
        tags.update(json_loads(row["tags"]) or [])
    return tags


def _parse_scene_row(row: sqlite3.Row) -> dict:
    """Parse a scene row to dict."""
    return {
        "id": row["id"],
        "name": row["name"],
        "grid_size": row["grid_size"],
        "width": row["width"],
        "height": row["height"],
        "flags": json_loads(row["flags_json"]) or {},
        "created_at": row["created_at"],
    }


def _parse_document_row(row: sqlite3.Row) -> dict:
    """Parse a document row to dict."""
    return {
        "id": row["id"],
        "scene_id": row["scene_id"],
        "kind": row["kind"],
        "name": row["name"],
        "data": json_loads(row["data_json"]),
        "tags": json_loads(row["tags"]) or [],
        "created_at": row["created_at"],
    }

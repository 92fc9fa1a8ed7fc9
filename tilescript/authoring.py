"""
Tile Author - compiles configs against a stored scene and persists them.

This is the impure half of authoring: it snapshots the scene, provisions
actors and tokens for combat traps, runs the pure compiler, checks the
program, and writes the tile and its companions.

Tag allocation races between two authors writing to the same scene are
resolved optimistically: the write transaction rejects tags that appeared
after the snapshot was taken, and the author recompiles against a fresh
snapshot.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .compilers import CompiledTile, compile_config
from .compilers.combat_trap import ACTOR_FLAG
from .compilers.teleport import RETURN_FLAG
from .config import Settings
from .core.entities import AUTOMATION_FLAG, trap_actor_data, trap_token_data
from .core.flow import ensure_valid
from .core.models import Combatant, CombatTrapConfig, TileConfig
from .core.schemas import validate_steps
from .core.steps import StepKind
from .core.tags import default_name
from .db.scene_store import EntityNotFoundError, SceneStore, TagConflictError, new_id

logger = logging.getLogger(__name__)


def trap_token_flag(actor_id: str) -> str:
    """Scene flag that remembers the token placed for a trap actor."""
    return f"trap-token-{actor_id}"


@dataclass
class AuthoredTile:
    """Result of persisting one compiled tile."""
    tile: dict
    compiled: CompiledTile
    companions: list[dict] = field(default_factory=list)
    attempts: int = 1

    @property
    def tile_id(self) -> str:
        return self.tile["id"]


class TileAuthor:
    """Creates and deletes authored tiles in a SceneStore."""

    def __init__(
        self,
        store: SceneStore,
        settings: Optional[Settings] = None,
        max_retries: int = 3,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.max_retries = max_retries

    # =========================================================================
    # Creation
    # =========================================================================

    def compile(
        self,
        config: TileConfig,
        scene_id: str,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        combatant: Optional[Combatant] = None,
    ) -> CompiledTile:
        """Compile and check a config against the scene's current snapshot."""
        snapshot = self.store.scene_snapshot(scene_id)
        compiled = compile_config(
            config, snapshot, x, y,
            settings=self.settings, combatant=combatant, width=width, height=height,
        )
        validate_steps(compiled.steps)
        report = ensure_valid(compiled.steps)
        for warning in report.warnings:
            logger.warning("%s: %s", compiled.name, warning)
        return compiled

    def create(
        self,
        config: TileConfig,
        scene_id: str,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> AuthoredTile:
        """
        Compile a config and persist the tile with its companions.

        Raises:
            EntityNotFoundError: scene or combat trap item missing
            TagConflictError: tags kept colliding after max_retries attempts
            FlowError, StepSchemaError: the compiled program is malformed
        """
        self.store.require_scene(scene_id)

        combatant = None
        if isinstance(config, CombatTrapConfig):
            pos_x, pos_y = self.store.scene_snapshot(scene_id).default_position(x, y)
            combatant = self.provision_combatant(config, scene_id, pos_x, pos_y)

        attempt = 0
        while True:
            attempt += 1
            compiled = self.compile(config, scene_id, x, y, width, height, combatant)
            try:
                tile, companions = self._persist(compiled, scene_id)
            except TagConflictError as e:
                if attempt > self.max_retries:
                    raise
                logger.warning(
                    "Tag conflict creating %r (attempt %d): %s; recompiling",
                    compiled.name, attempt, e,
                )
                continue
            break

        logger.info(
            "Created %r in scene %s (tag %s, %d steps, %d companions)",
            compiled.name, scene_id, compiled.tag, len(compiled.steps), len(companions),
        )
        return AuthoredTile(tile=tile, compiled=compiled, companions=companions, attempts=attempt)

    def _persist(self, compiled: CompiledTile, scene_id: str) -> tuple[dict, list[dict]]:
        tile_id = new_id()
        documents = [{
            "id": tile_id,
            "scene_id": scene_id,
            "kind": "Tile",
            "name": compiled.name,
            "data": compiled.document(),
            "tags": compiled.tags,
        }]

        for companion in compiled.companions:
            companion_scene = companion.scene_id or scene_id
            if companion_scene != scene_id and self.store.get_scene(companion_scene) is None:
                logger.warning(
                    "Skipping %s for %r: scene %s not found",
                    companion.kind, compiled.name, companion_scene,
                )
                continue
            documents.append({
                "id": companion.id,
                "scene_id": companion_scene,
                "kind": companion.kind,
                "name": _companion_name(companion.data),
                "data": companion.data,
                "tags": companion.tags if companion.tags is not None else compiled.tags,
            })

        created = self.store.create_documents(documents, {scene_id: [compiled.tag]})
        return created[0], created[1:]

    def provision_combatant(
        self,
        config: CombatTrapConfig,
        scene_id: str,
        x: float,
        y: float,
    ) -> Combatant:
        """
        Create the actor and token a combat trap attacks with.

        Partial provisioning is not rolled back: if the token cannot be
        placed the actor remains.
        """
        item = self.store.get_item(config.item_id) if config.item_id else None
        if item is None:
            raise EntityNotFoundError(f"Attack item not found: {config.item_id or '(none)'}")

        snapshot = self.store.scene_snapshot(scene_id)
        name = config.name or default_name("Combat Trap", snapshot.tile_names)
        token_img = config.token_image or item["data"].get("img") or self.settings.default_trap_image
        folder = self.store.get_or_create_folder(self.settings.trap_actor_folder)

        actor = self.store.create_actor(
            name=f"{name} (Trap)",
            data=trap_actor_data(
                f"{name} (Trap)",
                folder["id"],
                item["data"].get("img") or self.settings.default_trap_image,
                token_img,
            ),
            folder_id=folder["id"],
            items=[{"source": item["id"], "name": item["name"], "type": item["type"], **item["data"]}],
        )
        weapon_id = actor["items"][0]["id"]

        token_x = config.token_x if config.token_x is not None else x
        token_y = config.token_y if config.token_y is not None else y
        token = self.store.create_document(
            scene_id,
            "Token",
            trap_token_data(
                actor["id"], f"{name} (Trap)", token_img, token_x, token_y, config.token_visible
            ),
            name=f"{name} (Trap)",
        )
        self.store.set_scene_flag(scene_id, trap_token_flag(actor["id"]), token["id"])

        logger.info("Provisioned trap actor %s and token %s for %r", actor["id"], token["id"], name)
        return Combatant(actor_id=actor["id"], token_id=token["id"], item_id=weapon_id, name=name)

    # =========================================================================
    # Deletion
    # =========================================================================

    def delete_tile(self, tile_id: str) -> list[str]:
        """
        Delete a tile and everything authored alongside it.

        Returns:
            IDs of every deleted document and actor, the tile first
        """
        tile = self.store.get_document(tile_id)
        if tile is None or tile["kind"] != "Tile":
            raise EntityNotFoundError(f"Tile not found: {tile_id}")

        scene_id = tile["scene_id"]
        block = (tile["data"].get("flags") or {}).get(AUTOMATION_FLAG, {})
        actions = block.get("actions", [])
        deleted = [tile_id]
        self.store.delete_document(tile_id)

        actor_id = block.get(ACTOR_FLAG)
        if actor_id:
            deleted.extend(self._delete_trap_actor(scene_id, actor_id))

        primary_tag = tile["tags"][0] if tile["tags"] else None
        if primary_tag and _is_light_tile(block, actions):
            for doc in self.store.find_by_tag(primary_tag, scene_id):
                if doc["kind"] in ("AmbientLight", "AmbientSound", "Tile"):
                    logger.info("Deleting %s %s from light group %s", doc["kind"], doc["id"], primary_tag)
                    self.store.delete_document(doc["id"])
                    deleted.append(doc["id"])

        return_id = block.get(RETURN_FLAG)
        if return_id and self.store.get_document(return_id):
            logger.info("Deleting return teleport tile %s", return_id)
            self.store.delete_document(return_id)
            deleted.append(return_id)
        elif primary_tag and _has_action(actions, StepKind.TELEPORT):
            # A return pad: remove the pad that points at it
            for doc in self.store.find_by_tag(primary_tag):
                origin = (doc["data"].get("flags") or {}).get(AUTOMATION_FLAG, {})
                if doc["kind"] == "Tile" and origin.get(RETURN_FLAG) == tile_id:
                    logger.info("Deleting teleport tile %s for return pad %s", doc["id"], tile_id)
                    self.store.delete_document(doc["id"])
                    deleted.append(doc["id"])

        logger.info("Deleted tile %s (%d related removed)", tile_id, len(deleted) - 1)
        return deleted

    def _delete_trap_actor(self, scene_id: str, actor_id: str) -> list[str]:
        deleted = []
        flag = trap_token_flag(actor_id)
        token_id = self.store.get_scene_flag(scene_id, flag)
        if token_id:
            if self.store.get_document(token_id):
                logger.info("Deleting trap token %s", token_id)
                self.store.delete_document(token_id)
                deleted.append(token_id)
            self.store.unset_scene_flag(scene_id, flag)

        if self.store.get_actor(actor_id):
            logger.info("Deleting trap actor %s", actor_id)
            self.store.delete_actor(actor_id)
            deleted.append(actor_id)
        return deleted


def _has_action(actions: list[dict], kind: StepKind) -> bool:
    return any(a.get("action") == kind.value for a in actions)


def _is_light_tile(block: dict, actions: list[dict]) -> bool:
    if "darkness" in (block.get("trigger") or []):
        return True
    return any(
        a.get("action") == StepKind.ACTIVATE.value
        and "AmbientLight" in str((a.get("data") or {}).get("entity", {}).get("id", ""))
        for a in actions
    )


def _companion_name(data: dict) -> str:
    block = (data.get("flags") or {}).get(AUTOMATION_FLAG)
    if block:
        return block.get("name", "")
    return data.get("name", "")

"""
Teleport Compiler - enter-triggered teleport pad with optional return pad.

Program: sound -> pause -> saving throw -> teleport. After a save only the
failing tokens (`previous`) are moved; without one the triggering token is.
The return pad lives on the destination scene and sends tokens back to
this pad's position.
"""

import logging
from typing import Optional

from ..config import Settings
from ..core import steps as st
from ..core.entities import automation_flags, base_tile_data
from ..core.models import TeleportTileConfig
from ..core.scene import SceneSnapshot
from ..core.tags import allocate_tag, parse_custom_tags
from .common import (
    PREVIOUS,
    Companion,
    CompiledTile,
    FileRef,
    Program,
    TriggerSettings,
    all_tags,
    companion_id,
    saving_throw,
)

logger = logging.getLogger(__name__)

TRIGGERING_TOKEN = {"id": "token", "name": "Triggering Token"}
RETURN_FLAG = "em-return-teleport-id"


def _return_tile(
    config: TeleportTileConfig,
    name: str,
    image: str,
    origin: tuple,
    scene: SceneSnapshot,
    tags: list[str],
) -> Companion:
    steps = []
    if config.sound and config.sound.strip():
        steps.append(st.play_sound(config.sound))
    steps.append(st.teleport(
        origin[0], origin[1], scene_id=scene.scene_id, delete_source=config.delete_source_token
    ))

    data = base_tile_data(
        image,
        scene.grid_size,
        scene.grid_size,
        config.teleport_x,
        config.teleport_y,
        hidden=config.hidden,
    )
    data["flags"] = automation_flags(
        name=f"Return: {name}",
        actions=[s.to_dict() for s in steps],
        files=[FileRef(image).to_dict()],
        trigger=["enter"],
    )
    return Companion(
        kind="Tile",
        id=companion_id(scene.scene_id, tags[0], "return"),
        data=data,
        scene_id=config.teleport_scene_id,
        tags=tags,
    )


def compile_teleport(
    config: TeleportTileConfig,
    scene: SceneSnapshot,
    x: Optional[float] = None,
    y: Optional[float] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> CompiledTile:
    """Compile a teleport pad, plus its return pad when requested."""
    settings = settings or Settings()
    name = config.name or "Teleport"
    image = config.tile_image or settings.default_off_image
    has_save = config.has_saving_throw and settings.token_bar_enabled

    steps = []
    if config.sound and config.sound.strip():
        steps.append(st.play_sound(config.sound))
    if config.pause_game_on_trigger:
        steps.append(st.pause(True))
    if has_save:
        steps.append(saving_throw(
            config.saving_throw,
            config.dc,
            TRIGGERING_TOKEN,
            config.flavor_text,
            "Make a saving throw to resist teleportation!",
        ))
    steps.append(st.teleport(
        config.teleport_x,
        config.teleport_y,
        scene_id=config.teleport_scene_id,
        entity=PREVIOUS if has_save else TRIGGERING_TOKEN,
        delete_source=config.delete_source_token,
    ))

    origin = scene.default_position(x, y)
    tile = base_tile_data(
        image,
        width or scene.grid_size,
        height or scene.grid_size,
        origin[0],
        origin[1],
        hidden=config.hidden,
    )

    tag = allocate_tag("Teleport", scene.tags, settings.tag_prefix)
    companions = []
    if config.create_return_teleport and config.teleport_scene_id:
        return_tag = allocate_tag("Return Teleport", scene.with_tags(tag).tags, settings.tag_prefix)
        companions.append(_return_tile(
            config, name, image, origin, scene,
            [tag, return_tag, *parse_custom_tags(config.custom_tags)],
        ))
    elif config.create_return_teleport:
        logger.warning("Return teleport for %r skipped: no destination scene", name)

    extra_flags = {RETURN_FLAG: companions[0].id} if companions else {}
    logger.debug("Compiled teleport %r (%d steps, tag %s)", name, len(steps), tag)

    return CompiledTile(
        name=name,
        program=Program(steps=steps, files=[FileRef(image)]),
        tile=tile,
        tag=tag,
        tags=all_tags(tag, config.custom_tags),
        settings=TriggerSettings(
            trigger=["enter"],
            pointer=True,
            allowpaused=config.pause_game_on_trigger,
        ),
        companions=companions,
        extra_flags=extra_flags,
    )

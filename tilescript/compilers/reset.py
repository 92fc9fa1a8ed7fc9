"""
Reset Compiler - restores scene variables and tile states.

Restoration policy per target tile:
  - a tile whose program exposes any of activate / movement / tile image /
    show-hide gets only those categories restored, each to its snapshot
  - a plain tile (none of the four) gets the full default set: visibility,
    image index (when it has files) and position, since nothing tells us
    which of them are safe to skip
Door states and trigger-history resets are emitted per tile when present.
"""

import logging
from typing import Optional

from ..config import Settings
from ..core import steps as st
from ..core.entities import base_tile_data
from ..core.models import ResetConfig, ResetValue, TileResetState
from ..core.scene import SceneSnapshot
from ..core.steps import Step
from ..core.tags import allocate_tag
from .common import CompiledTile, Program, TriggerSettings, all_tags

logger = logging.getLogger(__name__)


def encode_reset_value(value: ResetValue) -> str:
    """Literal the engine evaluates when the reset step runs.

    >>> encode_reset_value("OFF")
    '"OFF"'
    >>> encode_reset_value(None)
    'null'
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def restore_tile(state: TileResetState, scene: SceneSnapshot) -> list[Step]:
    """Steps that put one tile back to its snapshot."""
    entity_id = scene.tile_ref(state.tile_id)
    entity_name = f"Tile: {state.tile_id}"
    plain = state.is_plain
    steps = []

    if state.has_show_hide_action or plain:
        steps.append(st.show_hide(entity_id, "hide" if state.hidden else "show", collection="tiles"))

    if state.has_files and (state.has_tile_image_action or plain):
        steps.append(st.tile_image(entity_id, state.fileindex, entity_name=entity_name))

    if state.has_activate_action:
        steps.append(st.activate(
            entity_id,
            "activate" if state.active else "deactivate",
            collection="tiles",
            entity_name=entity_name,
        ))

    if state.has_movement_action or plain:
        steps.append(st.move_token(entity_id, state.x or 0, state.y or 0, snap=True))
        if state.rotation:
            steps.append(st.rotation(entity_id, state.rotation))

    for door in state.wall_door_states:
        steps.append(st.change_door(door.entity_id, door.state))

    if state.reset_trigger_history:
        steps.append(st.reset_history(entity_id))

    return steps


def compile_reset(
    config: ResetConfig,
    scene: SceneSnapshot,
    x: Optional[float] = None,
    y: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> CompiledTile:
    """Compile a reset tile: variable resets, tile restores, confirmation."""
    settings = settings or Settings()
    name = config.name or "Reset Tile"

    steps = [
        st.set_variable(var_name, encode_reset_value(value))
        for var_name, value in config.vars_to_reset.items()
    ]
    for state in config.tiles_to_reset:
        steps.extend(restore_tile(state, scene))
    steps.append(st.chat_message(f"{name}: Variables reset", whisper="gm"))

    size = scene.grid_size * 2
    pos_x, pos_y = scene.default_position(x, y)
    tile = base_tile_data(config.image or settings.default_off_image, size, size, pos_x, pos_y)

    tag = allocate_tag(name, scene.tags, settings.tag_prefix)
    logger.debug(
        "Compiled reset %r (%d variables, %d tiles, %d steps)",
        name, len(config.vars_to_reset), len(config.tiles_to_reset), len(steps),
    )

    return CompiledTile(
        name=name,
        program=Program(steps=steps),
        tile=tile,
        tag=tag,
        tags=all_tags(tag, config.custom_tags),
        settings=TriggerSettings(trigger=["dblclick"], pointer=True),
    )

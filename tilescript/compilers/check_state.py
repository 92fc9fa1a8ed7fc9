"""
Check-State Compiler - router tile that runs the first matching branch.

Each branch compiles to:

    anchor <branch>
    checkvariable ... fail=<next branch or end>    (one per condition)
    <branch actions>
    chatmessage "Matched Branch"
    stop

All conditions of one branch share the same fail target, which makes
them a logical AND. The stop keeps a matched branch from falling through
into the next branch's body. After the last branch:

    anchor end
    chatmessage "No branch conditions matched"
"""

import logging
from typing import Optional

from ..config import Settings
from ..core import steps as st
from ..core.entities import base_tile_data
from ..core.models import (
    Branch,
    BranchAction,
    BranchActionCategory,
    BranchCondition,
    CheckStateConfig,
    ConditionOperator,
)
from ..core.scene import SceneSnapshot
from ..core.steps import Step
from ..core.tags import allocate_tag, sanitize_identifier
from .common import CompiledTile, Program, TriggerSettings, all_tags

logger = logging.getLogger(__name__)

END_ANCHOR = "end"


def branch_anchors(branches: list[Branch]) -> list[str]:
    """Unique anchor tag per branch, never colliding with the end anchor."""
    taken = {END_ANCHOR}
    anchors = []
    for index, branch in enumerate(branches, start=1):
        base = sanitize_identifier(branch.name).lower() or f"branch_{index}"
        candidate = base
        counter = 2
        while candidate in taken:
            candidate = f"{base}_{counter}"
            counter += 1
        taken.add(candidate)
        anchors.append(candidate)
    return anchors


def _owning_tile(config: CheckStateConfig, condition: BranchCondition) -> Optional[dict]:
    """Entity reference of the tile whose variables hold the condition's name."""
    for watched in config.tiles_to_check:
        if condition.variable_name in watched.variables:
            return {"id": watched.tile_id, "name": watched.tile_name}
    if condition.tile_id:
        return {"id": condition.tile_id, "name": condition.tile_name}
    return None


def condition_step(
    config: CheckStateConfig,
    condition: BranchCondition,
    fail: str,
    scene: SceneSnapshot,
) -> Step:
    owner = _owning_tile(config, condition)
    entity = None
    if owner is not None:
        entity = {"id": scene.tile_ref(owner["id"]), "name": owner["name"]}
    else:
        logger.warning(
            "No watched tile holds variable %r; checking it on this tile", condition.variable_name
        )

    if condition.operator == ConditionOperator.EQUALS:
        comparison = "all"
    else:
        comparison = condition.operator.value

    return st.check_variable(
        condition.variable_name,
        f'"{condition.value}"',
        fail=fail,
        entity=entity,
        comparison=comparison,
    )


def action_steps(action: BranchAction, scene: SceneSnapshot) -> list[Step]:
    if action.category == BranchActionCategory.DOOR_CHANGE:
        if not (action.wall_id and action.door_state):
            return []
        return [st.change_door(
            scene.wall_ref(action.wall_id),
            action.door_state.upper(),
            entity_name=action.wall_name or "Door",
        )]

    if not action.target_tile_id:
        return []
    entity_id = scene.tile_ref(action.target_tile_id)
    entity_name = action.target_tile_name or "Target Tile"
    steps = []
    if action.activate_mode and action.activate_mode != "nothing":
        steps.append(st.activate(entity_id, action.activate_mode, collection="tiles", entity_name=entity_name))
    if action.trigger_tile:
        steps.append(st.trigger(entity_id, entity_name=entity_name))
    if action.show_hide_mode and action.show_hide_mode != "nothing":
        steps.append(st.show_hide(entity_id, action.show_hide_mode, collection="tiles"))
    return steps


def compile_check_state(
    config: CheckStateConfig,
    scene: SceneSnapshot,
    x: Optional[float] = None,
    y: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> CompiledTile:
    """Compile a check-state router tile."""
    settings = settings or Settings()
    name = config.name or "Check State"

    steps = []
    if not config.branches:
        steps.append(st.chat_message(
            f"<h3>{name}</h3><p><em>No branches configured</em></p>", whisper="gm"
        ))
    else:
        anchors = branch_anchors(config.branches)
        for index, branch in enumerate(config.branches):
            fail = anchors[index + 1] if index + 1 < len(anchors) else END_ANCHOR
            steps.append(st.anchor(anchors[index], stop=False))
            for condition in branch.conditions:
                steps.append(condition_step(config, condition, fail, scene))
            for action in branch.actions:
                steps.extend(action_steps(action, scene))
            steps.append(st.chat_message(
                f"<h3>{name}</h3><p><strong>Matched Branch:</strong> {branch.name}</p>",
                whisper="gm",
            ))
            steps.append(st.stop())

        steps.append(st.anchor(END_ANCHOR, stop=False))
        steps.append(st.chat_message(
            f"<h3>{name}</h3><p><em>No branch conditions matched</em></p>", whisper="gm"
        ))

    size = scene.grid_size * 2
    pos_x, pos_y = scene.default_position(x, y)
    tile = base_tile_data(config.image or settings.default_off_image, size, size, pos_x, pos_y)

    tag = allocate_tag(name, scene.tags, settings.tag_prefix)
    logger.debug(
        "Compiled check state %r (%d branches, %d steps, tag %s)",
        name, len(config.branches), len(steps), tag,
    )

    return CompiledTile(
        name=name,
        program=Program(steps=steps),
        tile=tile,
        tag=tag,
        tags=all_tags(tag, config.custom_tags),
        settings=TriggerSettings(trigger=["dblclick"], pointer=True),
    )

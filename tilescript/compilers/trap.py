"""
Trap Compiler - enter-triggered trap tiles.

Program sections, in order:
  1. Visual response: hide, swap to next image, or (activating traps)
     drive other tiles and doors
  2. Sound, then optional game pause
  3. Result (non-activating traps only): damage / heal / teleport /
     active effect, optionally narrowed by a saving throw
  4. Additional effects on the full target set
  5. Optional self-deactivation for one-shot traps

Half damage on a successful save uses the roll-splitting step, which
resumes the program at the trapFail and trapSuccess anchors for the two
token groups and then at trapDone:

    requestroll (all tokens, auto-rolled)
    filterrequest passed=trapSuccess failed=trapFail resume=trapDone
    anchor trapFail (halts)
    hurtheal -[[dmg]]
    anchor trapSuccess (halts)
    hurtheal -[[floor((dmg) / 2)]]
    anchor trapDone
"""

import logging
from typing import Callable, Optional

from ..config import Settings
from ..core import steps as st
from ..core.entities import base_tile_data
from ..core.models import TrapConfig, TrapResultType
from ..core.scene import SceneSnapshot
from ..core.steps import Step
from ..core.tags import allocate_trap_tag, default_name
from .common import (
    PREVIOUS,
    CompiledTile,
    FileRef,
    Program,
    TriggerSettings,
    all_tags,
    saving_throw,
    target_entity,
)

logger = logging.getLogger(__name__)

FAIL_ANCHOR = "trapFail"
SUCCESS_ANCHOR = "trapSuccess"
DONE_ANCHOR = "trapDone"


# =============================================================================
# Visual response
# =============================================================================

def tile_action_steps(config: TrapConfig, scene: SceneSnapshot) -> list[Step]:
    """One step per target tile, then one door step per wall."""
    steps = []
    for action in config.tile_actions:
        entity_id = scene.tile_ref(action.tile_id)
        entity_name = f"Tile: {action.tile_id}"
        if action.action_type == "activate":
            steps.append(st.activate(
                entity_id, action.mode or "toggle", collection="tiles", entity_name=entity_name
            ))
        elif action.action_type == "showhide":
            steps.append(st.show_hide(entity_id, action.mode or "toggle", collection="tiles"))
        elif action.action_type == "moveto":
            steps.append(st.move_token(
                entity_id, action.x, action.y, entity_name=entity_name, position="random"
            ))
        else:
            logger.warning("Skipping unknown tile action type %r", action.action_type)

    for wall in config.wall_actions:
        steps.append(st.change_door(scene.wall_ref(wall.wall_id), wall.state))
    return steps


def visual_response_steps(
    hide_on_trigger: bool,
    triggered_image: str,
    reveal: bool = False,
) -> list[Step]:
    """Hide the trap, or reveal it and/or swap to its triggered image."""
    if hide_on_trigger:
        return [st.show_hide("tile", "hide", collection="tiles")]
    steps = []
    if reveal:
        steps.append(st.show_hide("tile", "show", collection="tiles"))
    if triggered_image:
        steps.append(st.tile_image("tile", "next"))
    return steps


# =============================================================================
# Results
# =============================================================================

def _damage_steps(config: TrapConfig, target: dict, has_save: bool) -> list[Step]:
    damage = config.damage_on_fail
    if not has_save:
        return [st.hurt_heal(f"-[[{damage}]]", target)] if damage else []

    if not config.half_damage_on_success:
        steps = [saving_throw(config.saving_throw, config.dc, target, config.flavor_text, "")]
        if damage:
            steps.append(st.hurt_heal(f"-[[{damage}]]", PREVIOUS))
        return steps

    steps = [
        st.request_roll(
            config.saving_throw,
            config.dc,
            entity=target,
            flavor=config.flavor_text,
            fastforward=True,
            usetokens="all",
            continue_on="always",
        ),
        st.filter_request(passed=SUCCESS_ANCHOR, failed=FAIL_ANCHOR, resume=DONE_ANCHOR),
        st.anchor(FAIL_ANCHOR, stop=True),
    ]
    if damage:
        steps.append(st.hurt_heal(f"-[[{damage}]]", PREVIOUS))
    steps.append(st.anchor(SUCCESS_ANCHOR, stop=True))
    if damage:
        # Half damage always rounds down
        steps.append(st.hurt_heal(f"-[[floor(({damage}) / 2)]]", PREVIOUS))
    steps.append(st.anchor(DONE_ANCHOR, stop=False))
    return steps


def _heal_steps(config: TrapConfig, target: dict, has_save: bool) -> list[Step]:
    if not config.healing_amount:
        return []
    return [st.hurt_heal(f"[[{config.healing_amount}]]", target)]


def _teleport_steps(config: TrapConfig, target: dict, has_save: bool, scene_id: str) -> list[Step]:
    steps = []
    if has_save:
        steps.append(saving_throw(config.saving_throw, config.dc, target, config.flavor_text))
    if config.teleport is not None:
        steps.append(st.teleport(
            config.teleport.x,
            config.teleport.y,
            scene_id=config.teleport.scene_id or scene_id,
            entity=PREVIOUS if has_save else target,
            animate_pan=False,
        ))
    return steps


def _effect_steps(config: TrapConfig, target: dict, has_save: bool) -> list[Step]:
    steps = []
    if has_save:
        steps.append(saving_throw(config.saving_throw, config.dc, target, config.flavor_text))
    if config.active_effect is not None:
        steps.append(st.active_effect(
            PREVIOUS if has_save else target,
            config.active_effect.effect_id,
            config.active_effect.mode,
            config.active_effect.alter,
        ))
    return steps


RESULT_COMPILERS: dict[TrapResultType, Callable[..., list[Step]]] = {
    TrapResultType.DAMAGE: _damage_steps,
    TrapResultType.HEAL: _heal_steps,
    TrapResultType.TELEPORT: _teleport_steps,
    TrapResultType.ACTIVE_EFFECT: _effect_steps,
}


def result_steps(config: TrapConfig, scene: SceneSnapshot, token_bar_enabled: bool = True) -> list[Step]:
    """Steps applying the trap's result to its target set."""
    target = target_entity(config.target_type)
    has_save = config.has_saving_throw and token_bar_enabled
    compile_result = RESULT_COMPILERS[config.result_type]
    if config.result_type == TrapResultType.TELEPORT:
        return compile_result(config, target, has_save, scene.scene_id)
    return compile_result(config, target, has_save)


def additional_effect_steps(config: TrapConfig) -> list[Step]:
    """Unconditional effects on the original, un-narrowed target set."""
    target = target_entity(config.target_type)
    return [
        st.active_effect(target, effect_id, config.additional_effects_action or "add")
        for effect_id in config.additional_effects
    ]


# =============================================================================
# Compiler
# =============================================================================

def trap_files(starting_image: str, triggered_image: str, hide_on_trigger: bool) -> list[FileRef]:
    files = [FileRef(starting_image)]
    if triggered_image and not hide_on_trigger:
        files.append(FileRef(triggered_image))
    return files


def compile_trap(
    config: TrapConfig,
    scene: SceneSnapshot,
    x: Optional[float] = None,
    y: Optional[float] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> CompiledTile:
    """Compile a trap tile."""
    settings = settings or Settings()
    name = config.name or default_name("Trap", scene.tile_names)
    starting_image = config.starting_image or settings.default_trap_image

    steps = []
    if config.is_activating:
        steps.extend(tile_action_steps(config, scene))
    else:
        steps.extend(visual_response_steps(
            config.hide_trap_on_trigger,
            config.triggered_image,
            reveal=config.hidden and config.reveal_on_trigger,
        ))

    if config.sound:
        steps.append(st.play_sound(config.sound))
    if config.pause_game_on_trigger:
        steps.append(st.pause(True))

    if not config.is_activating:
        steps.extend(result_steps(config, scene, settings.token_bar_enabled))

    steps.extend(additional_effect_steps(config))

    if config.deactivate_after_trigger:
        steps.append(st.activate("tile", "deactivate", collection="tiles"))

    program = Program(
        steps=steps,
        files=trap_files(starting_image, config.triggered_image, config.hide_trap_on_trigger),
    )

    pos_x, pos_y = scene.default_position(x, y)
    tile = base_tile_data(
        starting_image,
        width or scene.grid_size,
        height or scene.grid_size,
        pos_x,
        pos_y,
        hidden=config.hidden,
    )

    trap_type = "activating" if config.is_activating else config.result_type.value
    tag = allocate_trap_tag(name, trap_type, scene.tags, settings.tag_prefix)
    logger.debug("Compiled %s trap %r (%d steps, tag %s)", trap_type, name, len(steps), tag)

    return CompiledTile(
        name=name,
        program=program,
        tile=tile,
        tag=tag,
        tags=all_tags(tag, config.custom_tags),
        settings=TriggerSettings(
            trigger=["enter"],
            record=True,
            pointer=False,
            allowpaused=config.pause_game_on_trigger,
            minrequired=config.min_required,
        ),
    )

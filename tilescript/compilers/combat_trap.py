"""
Combat Trap Compiler - trap that attacks with a provisioned actor's item.

The actor, its item and the battlefield token are created by the caller
before compilation and passed in as a Combatant, so this compiler stays
pure like the others.

With a trigger limit the program starts with a counter prelude:

    setvariable  count = count or 0
    setvariable  count = count + 1
    checkvariable count > max, else jump to continue_trap
    activate     deactivate this tile
    chatmessage  limit notice to the GM
    stop
    anchor continue_trap
"""

import logging
from typing import Optional

from ..config import Settings
from ..core import steps as st
from ..core.entities import base_tile_data
from ..core.models import CombatTrapConfig, Combatant
from ..core.scene import SceneSnapshot
from ..core.steps import Step
from ..core.tags import allocate_trap_tag, default_name, sanitize_identifier
from .common import CompiledTile, Program, TriggerSettings, all_tags, target_entity
from .trap import trap_files, visual_response_steps

logger = logging.getLogger(__name__)

CONTINUE_ANCHOR = "continue_trap"
ACTOR_FLAG = "em-trap-actor-id"


def trigger_count_variable(name: str) -> str:
    return f"{sanitize_identifier(name)}_trigger_count"


def trigger_limit_steps(name: str, max_triggers: int) -> list[Step]:
    """Counter prelude that deactivates the tile once the limit is passed."""
    variable = trigger_count_variable(name)
    ref = f"variable.{variable}"
    return [
        st.set_variable(variable, f"{{{{#if {ref}}}}}{{{{{ref}}}}}{{{{else}}}}0{{{{/if}}}}"),
        st.set_variable(variable, f"{{{{add {ref} 1}}}}"),
        st.check_variable(variable, str(max_triggers), fail=CONTINUE_ANCHOR, comparison="gt"),
        st.activate("tile", "deactivate", collection="tiles"),
        st.chat_message(
            f"{name}: Maximum triggers reached ({max_triggers}), trap deactivated.",
            whisper="gm",
        ),
        st.stop(),
        st.anchor(CONTINUE_ANCHOR, stop=False),
    ]


def compile_combat_trap(
    config: CombatTrapConfig,
    scene: SceneSnapshot,
    combatant: Combatant,
    x: Optional[float] = None,
    y: Optional[float] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> CompiledTile:
    """Compile a combat trap around an already provisioned combatant."""
    settings = settings or Settings()
    name = config.name or default_name("Combat Trap", scene.tile_names)

    steps = []
    if config.max_triggers > 0:
        steps.extend(trigger_limit_steps(name, config.max_triggers))

    steps.extend(visual_response_steps(config.hide_trap_on_trigger, config.triggered_image))
    if config.sound:
        steps.append(st.play_sound(config.sound))

    token_ref = scene.token_ref(combatant.token_id)
    # An unseen attacker would roll with advantage
    steps.append(st.show_hide(token_ref, "show", collection="tokens"))
    steps.append(st.attack(
        target_entity(config.target_type),
        {"id": token_ref, "name": f"{name} (Trap)"},
        combatant.item_id,
        f"{name} Attack",
    ))

    starting_image = config.starting_image or settings.default_trap_image
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
        hidden=not config.starting_image,
    )

    tag = allocate_trap_tag(name, "combat", scene.tags, settings.tag_prefix)
    logger.debug(
        "Compiled combat trap %r (actor %s, %d steps, tag %s)",
        name, combatant.actor_id, len(steps), tag,
    )

    return CompiledTile(
        name=name,
        program=program,
        tile=tile,
        tag=tag,
        tags=all_tags(tag, config.custom_tags),
        settings=TriggerSettings(trigger=["enter"], record=True, pointer=False),
        extra_flags={ACTOR_FLAG: combatant.actor_id},
    )

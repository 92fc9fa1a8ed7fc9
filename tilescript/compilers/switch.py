"""
Switch Compiler - two-state toggle tile.

Program layout (ON/OFF convention):

    0 setvariable   init to "OFF" only when unset
    1 playsound
    2 setvariable   flip ON <-> OFF
    3 chatmessage   current state, whispered to the GM
    4 checkvariable == "ON", else jump to "off"
    5 tileimage     first (ON image)
    6 anchor off    halts when reached by fallthrough
    7 tileimage     last (OFF image)

Step 0 must never overwrite a value earlier triggers have toggled, so it
writes the current value back when one exists.
"""

import logging
from typing import Optional

from ..config import Settings
from ..core import steps as st
from ..core.models import SwitchConfig, SwitchStateFormat
from ..core.scene import SceneSnapshot
from ..core.tags import allocate_tag, default_name, next_tile_number
from ..core.entities import base_tile_data
from .common import CompiledTile, FileRef, Program, TriggerSettings, all_tags

logger = logging.getLogger(__name__)

OFF_ANCHOR = "off"


def _enum_steps(config: SwitchConfig, variable: str) -> list[st.Step]:
    ref = f"variable.{variable}"
    return [
        st.set_variable(variable, f'{{{{#if {ref}}}}}{{{{{ref}}}}}{{{{else}}}}"OFF"{{{{/if}}}}'),
        st.play_sound(config.sound),
        st.set_variable(variable, f'{{{{#if (eq {ref} "ON")}}}}"OFF"{{{{else}}}}"ON"{{{{/if}}}}'),
        st.chat_message(f"{config.name}: {{{{{ref}}}}}", whisper="gm"),
        st.check_variable(variable, '"ON"', fail=OFF_ANCHOR),
    ]


def _boolean_steps(config: SwitchConfig, variable: str) -> list[st.Step]:
    # Legacy convention kept for tiles authored before the ON/OFF enum
    ref = f"variable.{variable}"
    return [
        st.set_variable(variable, f"{{{{#if {ref}}}}}true{{{{else}}}}false{{{{/if}}}}"),
        st.play_sound(config.sound),
        st.set_variable(variable, f"{{{{not {ref}}}}}"),
        st.chat_message(f"{config.name}: {{{{{ref}}}}}", whisper="gm"),
        st.check_variable(variable, "true", fail=OFF_ANCHOR),
    ]


def compile_switch(
    config: SwitchConfig,
    scene: SceneSnapshot,
    x: Optional[float] = None,
    y: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> CompiledTile:
    """Compile a switch into its toggle program and tile data."""
    settings = settings or Settings()

    name = config.name or default_name("Switch", scene.tile_names)
    variable = config.variable_name or f"switch_{next_tile_number('Switch', scene.tile_names)}"
    on_image = config.on_image or settings.default_on_image
    off_image = config.off_image or settings.default_off_image
    sound = config.sound or settings.default_sound
    resolved = SwitchConfig(
        name=name,
        variable_name=variable,
        on_image=on_image,
        off_image=off_image,
        sound=sound,
        state_format=config.state_format,
    )

    if config.state_format == SwitchStateFormat.BOOLEAN:
        head = _boolean_steps(resolved, variable)
        initial = False
    else:
        head = _enum_steps(resolved, variable)
        initial = "OFF"

    steps = head + [
        st.tile_image("tile", "first"),
        st.anchor(OFF_ANCHOR, stop=True),
        st.tile_image("tile", "last"),
    ]

    program = Program(
        steps=steps,
        files=[FileRef(on_image), FileRef(off_image)],
        variables={variable: initial},
    )

    pos_x, pos_y = scene.default_position(x, y)
    tile = base_tile_data(off_image, scene.grid_size, scene.grid_size, pos_x, pos_y)

    tag = allocate_tag(name, scene.tags, settings.tag_prefix)
    logger.debug("Compiled switch %r (%d steps, tag %s)", name, len(steps), tag)

    return CompiledTile(
        name=name,
        program=program,
        tile=tile,
        tag=tag,
        tags=all_tags(tag, config.custom_tags),
        settings=TriggerSettings(trigger=["dblclick"], pointer=True),
    )

"""
Light Compiler - light source, toggle tile and optional sound/overlay.

Trigger modes are exclusive:
  darkness  the light's own darkness range drives it; no toggle steps,
            light starts visible
  manual    double-click runs image swap + light toggle (+ sound toggle,
            + overlay show/hide); light starts hidden

All created entities share one allocated tag so they can be found and
cleaned up together.
"""

import logging
from typing import Optional

from ..config import Settings
from ..core import steps as st
from ..core.entities import ambient_light_data, ambient_sound_data, base_tile_data, automation_flags
from ..core.models import LightConfig
from ..core.scene import SceneSnapshot
from ..core.tags import allocate_tag
from .common import (
    Companion,
    CompiledTile,
    FileRef,
    Program,
    TriggerSettings,
    all_tags,
    companion_id,
)

logger = logging.getLogger(__name__)


def compile_light(
    config: LightConfig,
    scene: SceneSnapshot,
    x: Optional[float] = None,
    y: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> CompiledTile:
    """Compile a light group into its toggle tile plus companion documents."""
    settings = settings or Settings()

    name = config.name or "Light"
    on_image = config.on_image or settings.default_light_on_image
    off_image = config.off_image or settings.default_light_off_image
    size = scene.grid_size
    pos_x, pos_y = scene.default_position(x, y)
    # Centre of the tile's bounding box
    centre_x = pos_x + size / 2
    centre_y = pos_y + size / 2

    tag = allocate_tag(name, scene.tags, settings.tag_prefix)
    companions = []

    light_id = companion_id(scene.scene_id, tag, "light")
    companions.append(Companion(
        kind="AmbientLight",
        id=light_id,
        data=ambient_light_data(
            centre_x,
            centre_y,
            dim=config.dim_light,
            bright=config.bright_light,
            color=config.light_color or None,
            color_intensity=config.color_intensity,
            use_darkness=config.use_darkness,
            darkness_min=config.darkness_min,
        ),
    ))

    sound_id = None
    if config.sound and config.sound.strip():
        sound_id = companion_id(scene.scene_id, tag, "sound")
        companions.append(Companion(
            kind="AmbientSound",
            id=sound_id,
            data=ambient_sound_data(
                centre_x,
                centre_y,
                config.sound,
                radius=config.sound_radius,
                volume=config.sound_volume,
                hidden=not config.use_darkness,
            ),
        ))

    overlay_id = None
    if config.use_overlay and config.overlay_image:
        overlay_id = companion_id(scene.scene_id, tag, "overlay")
        overlay = base_tile_data(
            config.overlay_image, size, size, pos_x, pos_y, hidden=True, elevation=1
        )
        overlay["flags"] = automation_flags(
            name=f"{name} (Overlay)",
            actions=[],
            trigger=[],
            active=False,
            pointer=False,
        )
        companions.append(Companion(kind="Tile", id=overlay_id, data=overlay))

    steps = []
    if not config.use_darkness:
        steps.append(st.tile_image("tile", "next"))
        steps.append(st.activate(scene.light_ref(light_id), "toggle", collection="lights"))
        if sound_id:
            steps.append(st.activate(scene.sound_ref(sound_id), "toggle", collection="sounds"))
        if overlay_id:
            steps.append(st.show_hide(scene.tile_ref(overlay_id), "toggle", collection="tiles"))

    program = Program(steps=steps, files=[FileRef(off_image), FileRef(on_image)])
    tile = base_tile_data(off_image, size, size, pos_x, pos_y)

    logger.debug(
        "Compiled light %r (%s mode, %d companions, tag %s)",
        name, "darkness" if config.use_darkness else "manual", len(companions), tag,
    )

    return CompiledTile(
        name=name,
        program=program,
        tile=tile,
        tag=tag,
        tags=all_tags(tag, config.custom_tags),
        settings=TriggerSettings(
            trigger=["darkness"] if config.use_darkness else ["dblclick"],
            pointer=not config.use_darkness,
        ),
        companions=companions,
    )

"""Compilers from typed tile configs to step programs."""

from typing import Optional

from ..config import Settings
from ..core.models import (
    CheckStateConfig,
    Combatant,
    CombatTrapConfig,
    LightConfig,
    ResetConfig,
    SwitchConfig,
    TeleportTileConfig,
    TileConfig,
    TrapConfig,
)
from ..core.scene import SceneSnapshot
from .check_state import compile_check_state
from .combat_trap import compile_combat_trap
from .common import Companion, CompiledTile, FileRef, Program, TriggerSettings
from .light import compile_light
from .reset import compile_reset
from .switch import compile_switch
from .teleport import compile_teleport
from .trap import compile_trap


def compile_config(
    config: TileConfig,
    scene: SceneSnapshot,
    x: Optional[float] = None,
    y: Optional[float] = None,
    settings: Optional[Settings] = None,
    combatant: Optional[Combatant] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
) -> CompiledTile:
    """Compile any tile config with the matching compiler.

    Combat traps need the combatant provisioned by the caller.
    """
    if isinstance(config, SwitchConfig):
        return compile_switch(config, scene, x, y, settings)
    if isinstance(config, LightConfig):
        return compile_light(config, scene, x, y, settings)
    if isinstance(config, ResetConfig):
        return compile_reset(config, scene, x, y, settings)
    if isinstance(config, TrapConfig):
        return compile_trap(config, scene, x, y, width, height, settings)
    if isinstance(config, CombatTrapConfig):
        if combatant is None:
            raise ValueError("Combat traps need a provisioned combatant")
        return compile_combat_trap(config, scene, combatant, x, y, width, height, settings)
    if isinstance(config, CheckStateConfig):
        return compile_check_state(config, scene, x, y, settings)
    if isinstance(config, TeleportTileConfig):
        return compile_teleport(config, scene, x, y, width, height, settings)
    raise TypeError(f"Unsupported tile config: {type(config).__name__}")


__all__ = [
    "Companion",
    "CompiledTile",
    "FileRef",
    "Program",
    "TriggerSettings",
    "compile_check_state",
    "compile_combat_trap",
    "compile_config",
    "compile_light",
    "compile_reset",
    "compile_switch",
    "compile_teleport",
    "compile_trap",
]

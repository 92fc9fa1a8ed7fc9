"""Test fixtures for tilescript tests."""

from .configs import (
    make_switch,
    make_light,
    make_reset,
    make_trap,
    make_combat_trap,
    make_check_state,
    make_teleport,
    make_combatant,
)
from .store import setup_minimal_world

__all__ = [
    "make_switch",
    "make_light",
    "make_reset",
    "make_trap",
    "make_combat_trap",
    "make_check_state",
    "make_teleport",
    "make_combatant",
    "setup_minimal_world",
]

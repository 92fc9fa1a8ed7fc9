"""Typed tile behavior configurations.

One config dataclass per compiler. Configs arrive already validated by the
authoring UI; every field has a default so that omissions compile to a
defined behavior.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TrapResultType(Enum):
    """What happens to the targets of a trap."""
    DAMAGE = "damage"
    HEAL = "heal"
    TELEPORT = "teleport"
    ACTIVE_EFFECT = "activeeffect"


class TrapTargetType(Enum):
    """Who a trap result applies to."""
    TRIGGERING = "triggering"
    WITHIN_TILE = "within"
    PLAYER_TOKENS = "players"


class SwitchStateFormat(Enum):
    """How a switch persists its state in the scene variable."""
    ENUM = "enum"        # "ON" / "OFF"
    BOOLEAN = "boolean"  # legacy true / false flip


class ConditionOperator(Enum):
    EQUALS = "eq"
    NOT_EQUALS = "ne"
    GREATER_THAN = "gt"
    LESS_THAN = "lt"
    GREATER_THAN_OR_EQUAL = "gte"
    LESS_THAN_OR_EQUAL = "lte"


class BranchActionCategory(Enum):
    TILE_CHANGE = "tile"
    DOOR_CHANGE = "door"


# ---------------------------------------------------------------------------
# Switch
# ---------------------------------------------------------------------------

@dataclass
class SwitchConfig:
    """Two-state toggle tile."""
    name: str = ""
    variable_name: str = ""
    on_image: str = ""
    off_image: str = ""
    sound: str = ""
    state_format: SwitchStateFormat = SwitchStateFormat.ENUM
    custom_tags: str = ""


# ---------------------------------------------------------------------------
# Light
# ---------------------------------------------------------------------------

@dataclass
class LightConfig:
    """Light source plus its toggle tile."""
    name: str = ""
    on_image: str = ""
    off_image: str = ""
    use_darkness: bool = False
    darkness_min: float = 0.0
    dim_light: float = 40
    bright_light: float = 20
    light_color: str = ""
    color_intensity: float = 0.5
    sound: str = ""
    sound_radius: float = 40
    sound_volume: float = 0.5
    use_overlay: bool = False
    overlay_image: str = ""
    custom_tags: str = ""


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------

@dataclass
class WallDoorState:
    """Door state to restore on a wall the tile controls."""
    entity_id: str
    state: str
    entity_name: str = ""


@dataclass
class TileResetState:
    """Snapshot of a target tile taken when the reset tile was authored.

    The has_* flags record which behavior categories the tile's own program
    exposes; the other fields are the values to restore.
    """
    tile_id: str
    hidden: bool = False
    fileindex: int = 0
    active: bool = True
    rotation: float = 0
    x: Optional[float] = None
    y: Optional[float] = None
    wall_door_states: list[WallDoorState] = field(default_factory=list)
    has_activate_action: bool = False
    has_movement_action: bool = False
    has_tile_image_action: bool = False
    has_show_hide_action: bool = False
    has_files: bool = False
    reset_trigger_history: bool = False

    @property
    def is_plain(self) -> bool:
        """True when the tile exposes none of the four behavior capabilities."""
        return not (
            self.has_activate_action
            or self.has_movement_action
            or self.has_tile_image_action
            or self.has_show_hide_action
        )


ResetValue = Union[None, str, bool, int, float]


@dataclass
class ResetConfig:
    """Tile that restores variables and tile states."""
    name: str = ""
    image: str = ""
    vars_to_reset: dict[str, ResetValue] = field(default_factory=dict)
    tiles_to_reset: list[TileResetState] = field(default_factory=list)
    custom_tags: str = ""


# ---------------------------------------------------------------------------
# Traps
# ---------------------------------------------------------------------------

@dataclass
class TeleportTarget:
    x: float
    y: float
    scene_id: str = ""


@dataclass
class ActiveEffectConfig:
    effect_id: str
    mode: str = "add"  # add, remove, toggle, clear
    alter: str = ""


@dataclass
class TileAction:
    """Action an activating trap performs on another tile."""
    tile_id: str
    action_type: str = "activate"  # activate, showhide, moveto
    mode: str = "toggle"
    x: float = 0
    y: float = 0


@dataclass
class WallAction:
    """Door state change an activating trap performs."""
    wall_id: str
    state: str = "nothing"


@dataclass
class TrapConfig:
    """Trap tile triggered when a token enters it."""
    name: str = ""
    starting_image: str = ""
    triggered_image: str = ""
    hide_trap_on_trigger: bool = False
    hidden: bool = False
    reveal_on_trigger: bool = False
    sound: str = ""
    pause_game_on_trigger: bool = False
    deactivate_after_trigger: bool = False
    result_type: TrapResultType = TrapResultType.DAMAGE
    target_type: TrapTargetType = TrapTargetType.TRIGGERING
    has_saving_throw: bool = False
    saving_throw: str = "save:dex"
    dc: int = 10
    flavor_text: str = ""
    half_damage_on_success: bool = False
    damage_on_fail: str = ""
    healing_amount: str = ""
    teleport: Optional[TeleportTarget] = None
    active_effect: Optional[ActiveEffectConfig] = None
    tile_actions: list[TileAction] = field(default_factory=list)
    wall_actions: list[WallAction] = field(default_factory=list)
    additional_effects: list[str] = field(default_factory=list)
    additional_effects_action: str = "add"
    min_required: Optional[int] = None
    custom_tags: str = ""

    @property
    def is_activating(self) -> bool:
        """Activating traps drive other tiles instead of applying a result."""
        return bool(self.tile_actions)


@dataclass
class CombatTrapConfig:
    """Trap that attacks with a provisioned actor's item."""
    name: str = ""
    starting_image: str = ""
    triggered_image: str = ""
    hide_trap_on_trigger: bool = False
    sound: str = ""
    target_type: TrapTargetType = TrapTargetType.TRIGGERING
    item_id: str = ""
    token_visible: bool = False
    token_image: str = ""
    token_x: Optional[float] = None
    token_y: Optional[float] = None
    max_triggers: int = 0  # 0 = unlimited
    custom_tags: str = ""


@dataclass
class Combatant:
    """Actor and token provisioned for a combat trap before compilation."""
    actor_id: str
    token_id: str
    item_id: str
    name: str


# ---------------------------------------------------------------------------
# Check state
# ---------------------------------------------------------------------------

@dataclass
class BranchCondition:
    variable_name: str
    value: str
    operator: ConditionOperator = ConditionOperator.EQUALS
    tile_id: str = ""
    tile_name: str = ""


@dataclass
class BranchAction:
    category: BranchActionCategory = BranchActionCategory.TILE_CHANGE
    target_tile_id: str = ""
    target_tile_name: str = ""
    activate_mode: str = "nothing"  # activate, deactivate, toggle, nothing
    trigger_tile: bool = False
    show_hide_mode: str = "nothing"  # show, hide, toggle, nothing
    wall_id: str = ""
    wall_name: str = ""
    door_state: str = ""  # open, closed, locked


@dataclass
class Branch:
    name: str
    conditions: list[BranchCondition] = field(default_factory=list)
    actions: list[BranchAction] = field(default_factory=list)


@dataclass
class WatchedTile:
    """A tile whose variables the router reads."""
    tile_id: str
    tile_name: str = ""
    variables: dict[str, Any] = field(default_factory=dict)


@dataclass
class CheckStateConfig:
    """Router tile that runs the first branch whose conditions all hold."""
    name: str = ""
    image: str = ""
    tiles_to_check: list[WatchedTile] = field(default_factory=list)
    branches: list[Branch] = field(default_factory=list)
    custom_tags: str = ""


# ---------------------------------------------------------------------------
# Teleport
# ---------------------------------------------------------------------------

@dataclass
class TeleportTileConfig:
    """Standalone teleport pad."""
    name: str = ""
    tile_image: str = ""
    sound: str = ""
    teleport_x: float = 0
    teleport_y: float = 0
    teleport_scene_id: str = ""
    hidden: bool = False
    delete_source_token: bool = False
    pause_game_on_trigger: bool = False
    has_saving_throw: bool = False
    saving_throw: str = "save:dex"
    dc: int = 10
    flavor_text: str = ""
    create_return_teleport: bool = False
    custom_tags: str = ""


TileConfig = Union[
    SwitchConfig,
    LightConfig,
    ResetConfig,
    TrapConfig,
    CombatTrapConfig,
    CheckStateConfig,
    TeleportTileConfig,
]

"""
Step Builder - Primitive automation steps for the scene automation engine.

Each Step is one instruction of a linear program that the engine executes
top to bottom. The engine only knows forward conditional skips (a check
jumps to a named anchor on failure) and halting anchors, so every helper
here just fills in one record; branching is the compilers' job.

Helper constructors fill the engine's default parameter values so that
compiled output matches what the engine's own editor would produce.
"""

import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


class StepKind(Enum):
    """Closed step vocabulary. Values are the engine's wire action names."""
    SET_VARIABLE = "setvariable"
    CHECK_VARIABLE = "checkvariable"
    CHECK_VALUE = "checkvalue"
    PLAY_SOUND = "playsound"
    CHAT_MESSAGE = "chatmessage"
    TILE_IMAGE = "tileimage"
    ANCHOR = "anchor"
    STOP = "stop"
    SHOW_HIDE = "showhide"
    ACTIVATE = "activate"
    MOVE = "movetoken"
    ROTATE = "rotation"
    CHANGE_DOOR = "changedoor"
    RESET_HISTORY = "resethistory"
    TELEPORT = "teleport"
    ACTIVE_EFFECT = "activeeffect"
    HURT_HEAL = "hurtheal"
    ATTACK = "attack"
    REQUEST_ROLL = "monks-tokenbar.requestroll"
    FILTER_REQUEST = "monks-tokenbar.filterrequest"
    TRIGGER = "trigger"
    PAUSE = "pause"


# Kinds that can redirect execution to an anchor
JUMP_KINDS = frozenset({
    StepKind.CHECK_VARIABLE,
    StepKind.CHECK_VALUE,
    StepKind.FILTER_REQUEST,
})

THIS_TILE = {"id": "tile", "name": "This Tile"}


def new_step_id() -> str:
    """Generate a 16-character step id."""
    return uuid.uuid4().hex[:16]


@dataclass(frozen=True)
class Step:
    """One primitive automation instruction."""
    kind: StepKind
    data: Mapping[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_step_id)

    def __post_init__(self):
        # Detach from the caller's dict so the step cannot change after build
        object.__setattr__(self, "data", MappingProxyType(copy.deepcopy(dict(self.data))))

    def __hash__(self) -> int:
        # Equal steps share an id; data itself is unhashable
        return hash(self.id)

    @property
    def jump_targets(self) -> list[str]:
        """Anchor tags this step may jump to."""
        if self.kind in (StepKind.CHECK_VARIABLE, StepKind.CHECK_VALUE):
            fail = self.data.get("fail", "")
            return [fail] if fail else []
        if self.kind == StepKind.FILTER_REQUEST:
            return [
                self.data[key] for key in ("passed", "failed", "resume")
                if self.data.get(key)
            ]
        return []

    @property
    def halts(self) -> bool:
        """True when linear execution ends on reaching this step by fallthrough."""
        if self.kind == StepKind.STOP:
            return True
        return self.kind == StepKind.ANCHOR and bool(self.data.get("stop"))

    def to_dict(self) -> dict:
        """Wire form understood by the automation engine."""
        return {
            "action": self.kind.value,
            "data": copy.deepcopy(dict(self.data)),
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> "Step":
        return cls(
            kind=StepKind(raw["action"]),
            data=raw.get("data", {}),
            id=raw.get("id") or new_step_id(),
        )


def build(kind: StepKind, data: Optional[Mapping[str, Any]] = None) -> Step:
    """Create a step with a freshly generated id."""
    return Step(kind=kind, data=data or {}, id=new_step_id())


def entity_ref(entity_id: str, name: str = "") -> dict:
    return {"id": entity_id, "name": name}


# =============================================================================
# Variables and flow control
# =============================================================================

def set_variable(name: str, value: Union[str, int, float, bool], scope: str = "scene") -> Step:
    """Set a scene variable. value may be a templated expression."""
    if isinstance(value, bool):
        value = "true" if value else "false"
    return build(StepKind.SET_VARIABLE, {
        "name": name,
        "value": str(value),
        "scope": scope,
    })


def check_variable(
    name: str,
    value: str,
    fail: str = "",
    entity: Optional[dict] = None,
    comparison: str = "eq",
) -> Step:
    """Continue when `name <comparison> value`, otherwise jump to anchor `fail`."""
    return build(StepKind.CHECK_VARIABLE, {
        "name": name,
        "value": value,
        "fail": fail,
        "entity": entity or dict(THIS_TILE),
        "type": comparison,
    })


def check_value(entity: dict, attribute: str, value: str, fail: str = "") -> Step:
    """Continue when an entity attribute matches, otherwise jump to anchor `fail`."""
    return build(StepKind.CHECK_VALUE, {
        "entity": entity,
        "attr": attribute,
        "value": value,
        "fail": fail,
    })


def anchor(tag: str, stop: bool = False) -> Step:
    """Jump target. A stopping anchor halts when reached by fallthrough."""
    return build(StepKind.ANCHOR, {"tag": tag, "stop": stop})


def stop() -> Step:
    return build(StepKind.STOP, {})


def pause(paused: bool = True) -> Step:
    return build(StepKind.PAUSE, {"pause": paused})


# =============================================================================
# Feedback
# =============================================================================

def play_sound(
    audiofile: str,
    audiofor: str = "everyone",
    volume: float = 1,
    loop: bool = False,
    fade: float = 0.25,
) -> Step:
    return build(StepKind.PLAY_SOUND, {
        "audiofile": audiofile,
        "audiofor": audiofor,
        "volume": volume,
        "loop": loop,
        "fade": fade,
        "scenerestrict": False,
        "prevent": False,
        "delay": False,
        "playlist": True,
    })


def chat_message(text: str, whisper: str = "", flavor: str = "", language: str = "") -> Step:
    """Broadcast a chat message. text may contain templated expressions."""
    return build(StepKind.CHAT_MESSAGE, {
        "text": text,
        "flavor": flavor,
        "whisper": whisper,
        "language": language,
    })


# =============================================================================
# Tiles, lights, doors
# =============================================================================

def tile_image(
    entity_id: str = "tile",
    select: Union[str, int] = "next",
    entity_name: str = "This Tile",
    transition: str = "none",
) -> Step:
    """Swap a tile's image: next, previous, first, last, or a file index."""
    return build(StepKind.TILE_IMAGE, {
        "entity": entity_ref(entity_id, entity_name),
        "select": str(select),
        "transition": transition,
    })


def show_hide(entity_id: str, hidden: str, collection: str = "tiles", fade: float = 0) -> Step:
    """hidden is one of show, hide, toggle."""
    return build(StepKind.SHOW_HIDE, {
        "entity": {"id": entity_id},
        "collection": collection,
        "hidden": hidden,
        "fade": fade,
    })


def activate(
    entity_id: str,
    mode: str = "toggle",
    collection: str = "lights",
    entity_name: str = "",
) -> Step:
    """mode is one of activate, deactivate, toggle."""
    return build(StepKind.ACTIVATE, {
        "entity": entity_ref(entity_id, entity_name),
        "activate": mode,
        "collection": collection,
    })


def move_token(
    entity_id: str,
    x: Union[int, float, str],
    y: Union[int, float, str],
    entity_name: str = "",
    duration: float = 0,
    snap: bool = True,
    speed: int = 6,
    position: Optional[str] = None,
) -> Step:
    data = {
        "entity": entity_ref(entity_id, entity_name) if entity_name else {"id": entity_id},
        "duration": duration,
        "x": str(x),
        "y": str(y),
        "location": {
            "id": "",
            "x": x if isinstance(x, (int, float)) else 0,
            "y": y if isinstance(y, (int, float)) else 0,
            "name": f"[x:{x} y:{y}]",
        },
        "snap": snap,
        "speed": speed,
        "trigger": False,
    }
    if position:
        data["position"] = position
    return build(StepKind.MOVE, data)


def rotation(entity_id: str, degrees: Union[int, float, str]) -> Step:
    return build(StepKind.ROTATE, {
        "entity": {"id": entity_id},
        "rotation": str(degrees),
    })


def change_door(entity_id: str, state: str = "nothing", entity_name: str = "") -> Step:
    """Change a wall's door state; other wall properties are left untouched."""
    entity = entity_ref(entity_id, entity_name) if entity_name else {"id": entity_id}
    return build(StepKind.CHANGE_DOOR, {
        "entity": entity,
        "type": "nothing",
        "state": state,
        "movement": "nothing",
        "light": "nothing",
        "sight": "nothing",
        "sound": "nothing",
    })


def reset_history(entity_id: str = "tile") -> Step:
    return build(StepKind.RESET_HISTORY, {
        "entity": entity_ref(entity_id, "This Tile"),
    })


def trigger(entity_id: str, entity_name: str = "", tokens: str = "") -> Step:
    """Run another tile's program."""
    return build(StepKind.TRIGGER, {
        "entity": entity_ref(entity_id, entity_name),
        "tokens": tokens,
    })


# =============================================================================
# Tokens
# =============================================================================

def teleport(
    x: Union[int, float],
    y: Union[int, float],
    scene_id: str = "",
    entity: Optional[dict] = None,
    delete_source: bool = False,
    animate_pan: bool = True,
) -> Step:
    return build(StepKind.TELEPORT, {
        "entity": entity or entity_ref("token", "Triggering Token"),
        "location": {
            "x": x,
            "y": y,
            "sceneId": scene_id,
            "name": f"[x:{x} y:{y}]",
        },
        "position": "random",
        "snap": True,
        "deletesource": delete_source,
        "remotesnap": True,
        "preservesettings": False,
        "animatepan": animate_pan,
        "triggerremote": False,
        "avoidtokens": True,
    })


def active_effect(entity: dict, effect_id: str, mode: str = "add", alter: str = "") -> Step:
    """Add, remove, toggle or clear a status effect."""
    return build(StepKind.ACTIVE_EFFECT, {
        "entity": entity,
        "effectid": effect_id,
        "addeffect": mode,
        "altereffect": alter,
    })


def hurt_heal(value: str, entity: dict, chatmessage: bool = True, rollmode: str = "roll") -> Step:
    """Negative values hurt, positive heal. value is usually an inline roll."""
    return build(StepKind.HURT_HEAL, {
        "entity": entity,
        "value": value,
        "chatmessage": chatmessage,
        "rollmode": rollmode,
        "showdice": True,
    })


def attack(target: dict, actor: dict, item_id: str, attack_name: str) -> Step:
    """Roll an item attack from actor against the target set."""
    return build(StepKind.ATTACK, {
        "entity": target,
        "actor": actor,
        "itemid": item_id,
        "rollmode": "roll",
        "chatbubble": False,
        "attack": {"id": item_id, "name": attack_name},
        "rollattack": "false",
        "chatcard": True,
        "fastforward": True,
        "rolldamage": True,
    })


def request_roll(
    request: str,
    dc: Union[int, str],
    entity: Optional[dict] = None,
    flavor: str = "",
    fastforward: bool = False,
    usetokens: str = "fail",
    continue_on: str = "failed",
    silent: bool = False,
) -> Step:
    """Ask tokens for a roll (e.g. save:dex).

    usetokens picks which tokens carry forward as `previous`;
    continue_on decides whether the program resumes (failed, always, ...).
    """
    return build(StepKind.REQUEST_ROLL, {
        "entity": entity or entity_ref("token", "Triggering Token"),
        "request": request,
        "dc": str(dc),
        "flavor": flavor,
        "rollmode": "roll",
        "silent": silent,
        "fastforward": fastforward,
        "usetokens": usetokens,
        "continue": continue_on,
    })


def filter_request(passed: str, failed: str, resume: str) -> Step:
    """Split the last roll's tokens into passed/failed continuations."""
    return build(StepKind.FILTER_REQUEST, {
        "passed": passed,
        "failed": failed,
        "resume": resume,
    })

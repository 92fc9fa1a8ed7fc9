"""
Step parameter schemas.

The automation engine rejects (or silently ignores) steps whose data does
not match its editor's shape, so every compiled step can be checked
against the JSON schema of its kind before anything is persisted.
"""

import jsonschema

from .steps import Step, StepKind


class StepSchemaError(ValueError):
    """A step's data does not match the schema for its kind."""

    def __init__(self, step: Step, message: str):
        self.step = step
        super().__init__(f"{step.kind.value} step {step.id}: {message}")


_ENTITY = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
    },
    "required": ["id"],
}


def _obj(properties: dict, required: list[str]) -> dict:
    return {
        "type": "object",
        "properties": properties,
        "required": required,
    }


STEP_SCHEMAS: dict[StepKind, dict] = {
    StepKind.SET_VARIABLE: _obj(
        {
            "name": {"type": "string", "minLength": 1},
            "value": {"type": "string"},
            "scope": {"enum": ["scene", "tile", "global", "user"]},
        },
        ["name", "value", "scope"],
    ),
    StepKind.CHECK_VARIABLE: _obj(
        {
            "name": {"type": "string", "minLength": 1},
            "value": {"type": "string"},
            "fail": {"type": "string"},
            "entity": _ENTITY,
            "type": {"enum": ["eq", "ne", "gt", "lt", "gte", "lte", "all", "any"]},
        },
        ["name", "value", "fail", "type"],
    ),
    StepKind.CHECK_VALUE: _obj(
        {
            "entity": _ENTITY,
            "attr": {"type": "string"},
            "value": {"type": "string"},
            "fail": {"type": "string"},
        },
        ["entity", "attr", "value", "fail"],
    ),
    StepKind.PLAY_SOUND: _obj(
        {
            "audiofile": {"type": "string"},
            "audiofor": {"type": "string"},
            "volume": {"type": "number", "minimum": 0},
            "loop": {"type": "boolean"},
            "fade": {"type": "number", "minimum": 0},
        },
        ["audiofile", "audiofor", "volume"],
    ),
    StepKind.CHAT_MESSAGE: _obj(
        {
            "text": {"type": "string"},
            "flavor": {"type": "string"},
            "whisper": {"type": "string"},
            "language": {"type": "string"},
        },
        ["text"],
    ),
    StepKind.TILE_IMAGE: _obj(
        {
            "entity": _ENTITY,
            "select": {"type": "string", "minLength": 1},
            "transition": {"type": "string"},
        },
        ["entity", "select"],
    ),
    StepKind.ANCHOR: _obj(
        {
            "tag": {"type": "string", "minLength": 1},
            "stop": {"type": "boolean"},
        },
        ["tag", "stop"],
    ),
    StepKind.STOP: {"type": "object"},
    StepKind.PAUSE: _obj({"pause": {"type": "boolean"}}, ["pause"]),
    StepKind.SHOW_HIDE: _obj(
        {
            "entity": _ENTITY,
            "collection": {"type": "string"},
            "hidden": {"enum": ["show", "hide", "toggle"]},
            "fade": {"type": "number"},
        },
        ["entity", "hidden"],
    ),
    StepKind.ACTIVATE: _obj(
        {
            "entity": _ENTITY,
            "activate": {"enum": ["activate", "deactivate", "toggle"]},
            "collection": {"type": "string"},
        },
        ["entity", "activate", "collection"],
    ),
    StepKind.MOVE: _obj(
        {
            "entity": _ENTITY,
            "x": {"type": "string"},
            "y": {"type": "string"},
            "location": {"type": "object"},
            "snap": {"type": "boolean"},
            "speed": {"type": "number"},
        },
        ["entity", "x", "y", "location"],
    ),
    StepKind.ROTATE: _obj(
        {"entity": _ENTITY, "rotation": {"type": "string"}},
        ["entity", "rotation"],
    ),
    StepKind.CHANGE_DOOR: _obj(
        {
            "entity": _ENTITY,
            "state": {"type": "string"},
            "type": {"type": "string"},
        },
        ["entity", "state"],
    ),
    StepKind.RESET_HISTORY: _obj({"entity": _ENTITY}, ["entity"]),
    StepKind.TRIGGER: _obj(
        {"entity": _ENTITY, "tokens": {"type": "string"}},
        ["entity"],
    ),
    StepKind.TELEPORT: _obj(
        {
            "entity": _ENTITY,
            "location": _obj(
                {"x": {"type": "number"}, "y": {"type": "number"}, "sceneId": {"type": "string"}},
                ["x", "y"],
            ),
            "deletesource": {"type": "boolean"},
        },
        ["entity", "location"],
    ),
    StepKind.ACTIVE_EFFECT: _obj(
        {
            "entity": _ENTITY,
            "effectid": {"type": "string", "minLength": 1},
            "addeffect": {"enum": ["add", "remove", "toggle", "clear"]},
            "altereffect": {"type": "string"},
        },
        ["entity", "effectid", "addeffect"],
    ),
    StepKind.HURT_HEAL: _obj(
        {
            "entity": _ENTITY,
            "value": {"type": "string", "minLength": 1},
            "chatmessage": {"type": "boolean"},
            "rollmode": {"type": "string"},
        },
        ["entity", "value"],
    ),
    StepKind.ATTACK: _obj(
        {
            "entity": _ENTITY,
            "actor": _ENTITY,
            "itemid": {"type": "string"},
            "attack": _obj({"id": {"type": "string"}, "name": {"type": "string"}}, ["id"]),
        },
        ["entity", "actor", "itemid", "attack"],
    ),
    StepKind.REQUEST_ROLL: _obj(
        {
            "entity": _ENTITY,
            "request": {"type": "string", "minLength": 1},
            "dc": {"type": "string"},
            "flavor": {"type": "string"},
            "fastforward": {"type": "boolean"},
            "usetokens": {"enum": ["all", "fail", "succeed"]},
            "continue": {"enum": ["always", "failed", "passed", "any"]},
        },
        ["entity", "request", "dc", "usetokens", "continue"],
    ),
    StepKind.FILTER_REQUEST: _obj(
        {
            "passed": {"type": "string", "minLength": 1},
            "failed": {"type": "string", "minLength": 1},
            "resume": {"type": "string", "minLength": 1},
        },
        ["passed", "failed", "resume"],
    ),
}


def validate_step(step: Step) -> None:
    """Validate one step's data against the schema for its kind.

    Raises:
        StepSchemaError: If the data does not match.
    """
    schema = STEP_SCHEMAS[step.kind]
    try:
        jsonschema.validate(instance=dict(step.data), schema=schema)
    except jsonschema.ValidationError as e:
        raise StepSchemaError(step, e.message) from e


def validate_steps(steps: list[Step]) -> None:
    """Validate every step in a sequence, stopping at the first mismatch."""
    for step in steps:
        validate_step(step)

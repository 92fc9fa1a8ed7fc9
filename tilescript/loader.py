"""
Config Loader - reads tile config documents from YAML or JSON.

A document is a mapping with a `type:` discriminator plus the config
fields, in snake_case or camelCase:

    type: switch
    name: Door Switch
    variableName: door_state
    onImage: on.png
    x: 1200            # optional placement
    y: 800

Missing keys fall back to the config's defaults.
"""

import json
import logging
import re
from dataclasses import MISSING, dataclass, fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union, get_args, get_origin, get_type_hints

import yaml

from .core.models import (
    CheckStateConfig,
    CombatTrapConfig,
    LightConfig,
    ResetConfig,
    SwitchConfig,
    TeleportTileConfig,
    TileConfig,
    TrapConfig,
)

logger = logging.getLogger(__name__)

CONFIG_TYPES = {
    "switch": SwitchConfig,
    "light": LightConfig,
    "reset": ResetConfig,
    "trap": TrapConfig,
    "combat_trap": CombatTrapConfig,
    "check_state": CheckStateConfig,
    "teleport": TeleportTileConfig,
}

PLACEMENT_KEYS = ("x", "y", "width", "height")


class ConfigError(ValueError):
    """A config document could not be turned into a tile config."""


@dataclass
class ConfigDocument:
    """A parsed config plus its optional placement on the scene."""
    config: TileConfig
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def type_name(self) -> str:
        return config_type_name(self.config)


def config_type_name(config: TileConfig) -> str:
    for name, cls in CONFIG_TYPES.items():
        if isinstance(config, cls):
            return name
    raise ConfigError(f"Unsupported tile config: {type(config).__name__}")


def to_snake_case(key: str) -> str:
    """variableName -> variable_name; already snake keys pass through."""
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", key).lower()


# =============================================================================
# Typed construction
# =============================================================================

def _convert(value: Any, hint: Any, path: str) -> Any:
    if value is None:
        return None

    origin = get_origin(hint)
    if origin is Union:
        members = [a for a in get_args(hint) if a is not type(None)]
        # Optional[X]; wider unions (reset literals) pass through as-is
        if len(members) == 1:
            return _convert(value, members[0], path)
        return value

    if origin is list:
        if not isinstance(value, list):
            raise ConfigError(f"{path}: expected a list, got {type(value).__name__}")
        (item_hint,) = get_args(hint) or (Any,)
        return [_convert(item, item_hint, f"{path}[{i}]") for i, item in enumerate(value)]

    if origin is dict:
        if isinstance(value, list):
            # A bare list of names means "no known value yet"
            return {str(name): None for name in value}
        if not isinstance(value, dict):
            raise ConfigError(f"{path}: expected a mapping, got {type(value).__name__}")
        return dict(value)

    if isinstance(hint, type) and issubclass(hint, Enum):
        try:
            return hint(value)
        except ValueError:
            allowed = ", ".join(m.value for m in hint)
            raise ConfigError(f"{path}: {value!r} is not one of {allowed}")

    if is_dataclass(hint):
        if not isinstance(value, dict):
            raise ConfigError(f"{path}: expected a mapping, got {type(value).__name__}")
        return build_dataclass(hint, value, path)

    if hint is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if hint is str and isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def build_dataclass(cls, data: dict, path: str = ""):
    """Build a (possibly nested) config dataclass from a plain mapping."""
    hints = get_type_hints(cls)
    normalized = {to_snake_case(k): v for k, v in data.items()}
    known = {f.name for f in fields(cls)}

    unknown = set(normalized) - known
    if unknown:
        logger.warning("%s: ignoring unknown keys %s", path or cls.__name__, sorted(unknown))

    kwargs = {}
    for f in fields(cls):
        if f.name not in normalized:
            if f.default is MISSING and f.default_factory is MISSING:
                raise ConfigError(f"{path or cls.__name__}: missing required field '{f.name}'")
            continue
        field_path = f"{path}.{f.name}" if path else f.name
        kwargs[f.name] = _convert(normalized[f.name], hints[f.name], field_path)
    return cls(**kwargs)


def parse_config(data: dict) -> ConfigDocument:
    """Build a typed config document from a parsed mapping."""
    if not isinstance(data, dict):
        raise ConfigError("Config document must be a mapping")

    body = dict(data)
    type_name = body.pop("type", None)
    if not type_name:
        raise ConfigError("Config document is missing its 'type' field")
    cls = CONFIG_TYPES.get(to_snake_case(str(type_name)).replace("-", "_"))
    if cls is None:
        raise ConfigError(
            f"Unknown tile type '{type_name}' (expected one of {', '.join(CONFIG_TYPES)})"
        )

    placement = {key: body.pop(key) for key in PLACEMENT_KEYS if key in body}
    config = build_dataclass(cls, body, str(type_name))
    return ConfigDocument(config=config, **placement)


def load_config_document(path: Union[str, Path]) -> ConfigDocument:
    """Read a YAML or JSON config document from disk."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not parse {path}: {e}")

    document = parse_config(data)
    logger.info("Loaded %s config from %s", document.type_name, path)
    return document

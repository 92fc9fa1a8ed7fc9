"""
Configuration management for tilescript.

Handles default images, sounds and extension flags used when authoring
tiles. Values come from the stored config file, overridden by
TILESCRIPT_* environment variables.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "TILESCRIPT_"


@dataclass
class Settings:
    """Authoring defaults.

    With no arguments, matches the stock defaults of the tile utilities.
    """
    default_on_image: str = "icons/svg/d20-highlight.svg"
    default_off_image: str = "icons/svg/d20.svg"
    default_sound: str = "sounds/doors/industrial/unlock.ogg"
    default_light_on_image: str = "icons/svg/light.svg"
    default_light_off_image: str = "icons/svg/light-off.svg"
    default_trap_image: str = "icons/environment/traps/trap-jaw-tan.webp"
    tag_prefix: str = "EM"
    # Saving throws need the roll-request extension on the engine side
    token_bar_enabled: bool = True
    grid_size: int = 100
    trap_actor_folder: str = "Dorman Lakely's Tile Utilities"


def get_config_dir() -> Path:
    """Get the configuration directory, creating it if needed."""
    config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    config_dir = Path(config_home) / "tilescript"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config(path: Optional[Path] = None) -> dict:
    """Load raw configuration from disk."""
    config_path = path or get_config_path()
    if config_path.exists():
        try:
            with open(config_path) as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", config_path, e)
            return {}
    return {}


def save_config(config: dict, path: Optional[Path] = None) -> None:
    """Save raw configuration to disk."""
    config_path = path or get_config_path()
    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)
    # Owner read/write only
    os.chmod(config_path, 0o600)


def _coerce(raw: str, current):
    """Convert an environment string to the type of the current value."""
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    return raw


def load_settings(path: Optional[Path] = None, environ: Optional[dict] = None) -> Settings:
    """
    Build Settings from the config file and environment.

    Priority:
    1. TILESCRIPT_<FIELD> environment variable
    2. Stored config file
    3. Built-in defaults
    """
    environ = os.environ if environ is None else environ
    stored = load_config(path)
    settings = Settings()

    for f in fields(Settings):
        if f.name in stored:
            setattr(settings, f.name, stored[f.name])
        env_value = environ.get(ENV_PREFIX + f.name.upper())
        if env_value is not None:
            setattr(settings, f.name, _coerce(env_value, getattr(settings, f.name)))

    return settings


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    """Persist every settings field to the config file."""
    save_config(asdict(settings), path)

"""Engine configuration: defaults, an optional JSON file, environment overrides.

Priority, lowest first:
  1. _CONFIG_DEFAULTS
  2. stored values in config.json (if a path is given and the file exists)
  3. PROXIMITY_TRIGGER_<KEY> environment variables, or the same keys in .env

update_config() merges partial updates into the stored file.
"""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "PROXIMITY_TRIGGER_"

_CONFIG_DEFAULTS: dict[str, Any] = {
    "default_radius": 2,
    "default_cooldown_ms": 10000,
    "default_image": "",
    "default_style": "Default",
    "default_actor_name": "Triggerer",
    "fallback_message": "They are lost in thought...",
    "min_cooldown_ms": 1,
    "attribute_search_depth": 10,
    "action_command": "!proximitytrigger-button",
}


class EngineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_radius: float = Field(default=2, gt=0)
    default_cooldown_ms: int = Field(default=10000, ge=0)
    default_image: str = ""
    default_style: str = "Default"
    default_actor_name: str = "Triggerer"
    fallback_message: str = "They are lost in thought..."
    min_cooldown_ms: int = Field(default=1, ge=1)
    attribute_search_depth: int = Field(default=10, ge=0)
    action_command: str = "!proximitytrigger-button"


def _env_overrides() -> dict[str, Any]:
    # .env in the working directory; real environment variables win
    environ = {**dotenv_values(Path.cwd() / ".env"), **os.environ}
    overrides: dict[str, Any] = {}
    for key in _CONFIG_DEFAULTS:
        value = environ.get(ENV_PREFIX + key.upper())
        if value is not None:
            overrides[key] = value
    return overrides


def get_config(path: Path | None = None) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values and env overrides."""
    config = dict(_CONFIG_DEFAULTS)
    if path is not None and path.is_file():
        stored = json.loads(path.read_text())
        for key, value in stored.items():
            if key in config:
                config[key] = value
    config.update(_env_overrides())
    return config


def load_config(path: Path | None = None) -> EngineConfig:
    """Validated config; string values from the environment are coerced by pydantic."""
    return EngineConfig.model_validate(get_config(path))


def update_config(path: Path, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge known fields into the stored file and persist. Returns the stored values."""
    stored: dict[str, Any] = {}
    if path.is_file():
        stored = json.loads(path.read_text())
    for key, value in fields.items():
        if key in _CONFIG_DEFAULTS:
            stored[key] = value
    EngineConfig.model_validate({**_CONFIG_DEFAULTS, **stored})
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(stored, indent=2))
    return stored

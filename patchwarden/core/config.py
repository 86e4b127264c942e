"""patchwarden configuration.

Resolution order:
1. Built-in defaults
2. YAML file from $PATCHWARDEN_CONFIG, else ./.patchwarden/config.yaml
3. Environment overrides (PATCHWARDEN_GIT, PATCHWARDEN_GIT_TIMEOUT,
   PATCHWARDEN_LOG_LEVEL)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from patchwarden.core.errors import ConfigError

CONFIG_ENV = "PATCHWARDEN_CONFIG"
DEFAULT_CONFIG_PATH = Path(".patchwarden") / "config.yaml"

_ENV_OVERRIDES = {
    "PATCHWARDEN_GIT": "git_binary",
    "PATCHWARDEN_GIT_TIMEOUT": "git_timeout",
    "PATCHWARDEN_LOG_LEVEL": "log_level",
}


class KernelConfig(BaseModel):
    """Runtime settings shared by every command."""

    model_config = {"extra": "forbid"}

    git_binary: str = Field(default="git", min_length=1)
    # None blocks until git exits
    git_timeout: float | None = Field(default=None, gt=0)
    # argv prefix for verification commands; None = platform default shell
    verify_shell: list[str] | None = None
    output_extension: str = ".txt"
    log_level: str = "WARNING"

    @field_validator("verify_shell")
    @classmethod
    def _shell_not_empty(cls, value: list[str] | None) -> list[str] | None:
        if value is not None and not value:
            raise ValueError("verify_shell must name at least the shell program")
        return value

    @field_validator("output_extension")
    @classmethod
    def _extension_is_suffix(cls, value: str) -> str:
        if not value.startswith(".") or "/" in value or "\\" in value:
            raise ValueError("output_extension must look like '.txt'")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping with proper error handling."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping, got {type(data).__name__} in {path}")
    return data


def load_config(
    cwd: Path | None = None,
    environ: dict[str, str] | None = None,
) -> KernelConfig:
    """Build the effective configuration.

    Args:
        cwd: Directory searched for .patchwarden/config.yaml
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: If the file is unreadable or any value is invalid.
    """
    env = dict(os.environ if environ is None else environ)
    base = cwd if cwd is not None else Path.cwd()

    values: dict[str, Any] = {}
    explicit = env.get(CONFIG_ENV)
    if explicit:
        path = Path(explicit)
        if not path.is_absolute():
            path = base / path
        if not path.is_file():
            raise ConfigError(f"{CONFIG_ENV} points to a missing file: {path}")
        values.update(_load_yaml(path))
    elif (base / DEFAULT_CONFIG_PATH).is_file():
        values.update(_load_yaml(base / DEFAULT_CONFIG_PATH))

    for env_name, field_name in _ENV_OVERRIDES.items():
        if env.get(env_name):
            values[field_name] = env[env_name]

    try:
        return KernelConfig(**values)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid patchwarden configuration: {details}")

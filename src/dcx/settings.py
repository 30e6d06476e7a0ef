"""Environment-derived configuration for a single dcx invocation."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ValidationError, field_validator

from .errors import ConfigError
from .naming import relay_dir

CONFIG_PATH_ENV = "DCX_DEVCONTAINER_CONFIG_PATH"
LOG_LEVEL_ENV = "DCX_LOG_LEVEL"
NETWORK_MODE_ENV = "DCX_NETWORK_MODE"

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class NetworkMode(str, Enum):
    """Network isolation level handed to the devcontainer."""

    RESTRICTED = "restricted"
    MINIMAL = "minimal"
    HOST = "host"
    OPEN = "open"

    def __str__(self) -> str:
        return self.value


class Settings(BaseModel):
    """Values dcx reads from the environment."""

    home: Path
    default_config: Optional[Path] = None
    user: str = "unknown"
    log_level: str = "WARNING"

    @field_validator("home")
    @classmethod
    def _absolute_home(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError("HOME must be an absolute path")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"log level must be one of {', '.join(sorted(LOG_LEVELS))}"
            )
        return level

    @property
    def relay(self) -> Path:
        return relay_dir(self.home)

    def resolve_config(self, explicit: Optional[Path]) -> Optional[Path]:
        """Explicit ``--config`` wins over ``DCX_DEVCONTAINER_CONFIG_PATH``."""
        return explicit if explicit is not None else self.default_config

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env

        home = env.get("HOME")
        if not home:
            raise ConfigError("HOME environment variable is not set")

        data = {
            "home": home,
            "user": env.get("USER") or env.get("USERNAME") or "unknown",
        }
        if env.get(CONFIG_PATH_ENV):
            data["default_config"] = env[CONFIG_PATH_ENV]
        if env.get(LOG_LEVEL_ENV):
            data["log_level"] = env[LOG_LEVEL_ENV]

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            problems = "; ".join(err["msg"] for err in exc.errors())
            raise ConfigError(f"Invalid environment: {problems}") from exc

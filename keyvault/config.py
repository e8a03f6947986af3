from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import VaultConfigurationError
from .models import RECORD_VERSION
from .utils.config_manager import ConfigManager

# Printable characters, including the plain space, are allowed. ASCII control
# characters, NEL and the Unicode line/paragraph separators are not.
DEFAULT_PASSWORD_PATTERN = r"[^\x00-\x1f\x7f\x85\u2028\u2029]+"
DEFAULT_STORAGE_PREFIX = "PRIVATE_ETH_KEY#"

_ENV_OVERRIDES = {
    "password_pattern": "KEYVAULT_PASSWORD_PATTERN",
    "storage_backend": "KEYVAULT_STORAGE_BACKEND",
    "storage_path": "KEYVAULT_STORAGE_PATH",
    "log_level": "KEYVAULT_LOG_LEVEL",
}


class VaultSettings(BaseModel):
    """Resolved configuration for a KeyVault and its default collaborators."""

    storage_prefix: str = Field(default=DEFAULT_STORAGE_PREFIX)
    record_version: str = Field(default=RECORD_VERSION)
    password_pattern: str = Field(
        default=DEFAULT_PASSWORD_PATTERN,
        description="Regular expression a password must fully match to be accepted",
    )
    storage_backend: Literal["memory", "file"] = Field(default="memory")
    storage_path: Path = Field(default=Path("./data/keyvault.json"))
    log_level: str = Field(default="INFO")

    @field_validator("storage_prefix")
    @classmethod
    def _ensure_prefix(cls, value: str) -> str:
        if not value:
            raise ValueError("storage_prefix cannot be empty")
        return value

    @field_validator("password_pattern")
    @classmethod
    def _ensure_compilable(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"password_pattern is not a valid regular expression: {exc}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level {value!r}")
        return level

    def password_allowed(self, password: str) -> bool:
        return re.fullmatch(self.password_pattern, password) is not None

    @classmethod
    def load(cls, config_manager: Optional[ConfigManager] = None) -> "VaultSettings":
        """Load settings from the `keyvault` section of config.json with env overrides."""
        manager = config_manager or ConfigManager()
        raw_config = manager.get("keyvault", {}) or {}
        if not isinstance(raw_config, dict):
            raise VaultConfigurationError("The 'keyvault' config section must be an object")

        values = {name: raw_config[name] for name in cls.model_fields if name in raw_config}
        for name, env_name in _ENV_OVERRIDES.items():
            env_value = os.getenv(env_name)
            if env_value:
                values[name] = env_value

        try:
            return cls(**values)
        except ValidationError as exc:
            raise VaultConfigurationError(f"Invalid key vault configuration: {exc}") from exc

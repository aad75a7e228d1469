"""Configuration with JSON file, secrets.yml, and env variable support."""

import json
import os
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "MEDIA_"


def _find_repo_root(*, start: Path) -> Path:
    """Best-effort repository root discovery.

    Relative paths (log files, config overlays) are resolved against the repo
    root so the process can be launched from any working directory.
    """

    try:
        start = start.resolve()
        for p in [start, *start.parents]:
            if (p / "pyproject.toml").exists():
                return p
    except OSError:
        pass

    return Path.cwd()


def _flatten_secrets_mapping(secrets: dict) -> dict:
    """Flatten secrets mapping into MediaConfig-compatible keys.

    Converts nested YAML structure to flat config keys:
        auth.token -> auth_token
        api.base_url -> api_base_url
    """
    flat = {}
    for section, values in secrets.items():
        if isinstance(values, dict):
            for key, value in values.items():
                flat[f"{section}_{key}"] = value
        else:
            flat[section] = values
    return flat


def _load_secrets(secrets_path: Path) -> dict:
    """Load and flatten secrets from YAML file."""
    if not secrets_path.exists():
        return {}

    with open(secrets_path, encoding="utf-8") as f:
        secrets = yaml.safe_load(f) or {}

    if not isinstance(secrets, dict):
        return {}

    return _flatten_secrets_mapping(secrets)


class MediaConfig(BaseSettings):
    """Configuration with JSON file + secrets.yml + env var support.

    Load order (later overrides earlier):
    1. config.json - base configuration
    2. secrets.yml - sensitive values (bearer token)
    3. Environment variables - runtime overrides

    Prefix: MEDIA_ (e.g., MEDIA_API_BASE_URL)
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Refresh endpoint
    api_base_url: str = Field(default="http://localhost:8080")
    refresh_path: str = Field(default="/api/v1/files/refresh-url")
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    auth_token: str | None = Field(
        default=None,
        description="Static bearer token; callers may pass their own token provider instead",
    )

    # Lifecycle tuning
    lead_time_seconds: float = Field(
        default=3600.0,
        ge=0,
        description="How long before expiry a proactive refresh fires",
    )
    max_attempts: int = Field(default=3)
    min_attempt_interval_ms: int = Field(default=2000, ge=0)
    fallback_validity_seconds: float = Field(
        default=7 * 24 * 3600,
        gt=0,
        description="Validity assumed when a URL carries no parseable expiry",
    )

    # Logging
    log_level: str = Field(default="INFO")
    error_log_file_enabled: bool = Field(default=False)
    error_log_file_path: str = Field(default="./logs/errors.log")
    error_log_level: str = Field(default="WARNING")
    error_log_max_bytes: int = Field(default=10_485_760)
    error_log_backup_count: int = Field(default=5)

    @field_validator("max_attempts")
    @classmethod
    def _validate_max_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_attempts must be at least 1")
        return value

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def lead_time(self) -> timedelta:
        return timedelta(seconds=self.lead_time_seconds)

    @property
    def min_attempt_interval(self) -> timedelta:
        return timedelta(milliseconds=self.min_attempt_interval_ms)

    @property
    def fallback_validity(self) -> timedelta:
        return timedelta(seconds=self.fallback_validity_seconds)

    @classmethod
    def from_json_file(
        cls,
        config_path: str = "config.json",
        secrets_path: str = "secrets.yml",
    ) -> "MediaConfig":
        """Load config from JSON + secrets.yml with env var overrides.

        Args:
            config_path: Path to JSON config file.
            secrets_path: Path to secrets YAML file.

        Returns:
            Configured MediaConfig instance.
        """
        config_data: dict[str, Any] = {}

        json_path = Path(config_path)
        if json_path.exists():
            with open(json_path, encoding="utf-8") as f:
                config_data = json.load(f)

        # Merge secrets (overrides JSON values)
        config_data.update(_load_secrets(Path(secrets_path)))

        # Drop file values that an env var overrides, so pydantic-settings
        # sees the env value instead of an explicit init kwarg.
        for key in [k for k in config_data if f"{ENV_PREFIX}{k.upper()}" in os.environ]:
            del config_data[key]

        return cls(**config_data)

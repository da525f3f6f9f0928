"""12-factor configuration adapter using environment variables and TOML config."""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]  # Fallback for older Python

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_UPSTREAM_TRACKER = "https://archipelago.gg/tracker"


class AppConfig(BaseSettings):
    """Application configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Upstream configuration
    upstream_trackers: list[str] = Field(
        default_factory=lambda: [DEFAULT_UPSTREAM_TRACKER],
        description="URL prefixes under which upstream trackers may be synchronized",
    )
    tracker_update_interval_minutes: int = Field(
        default=1,
        ge=1,
        description="Minimum time between two synchronizations of the same tracker",
    )
    upstream_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Total timeout for upstream HTTP requests in seconds",
    )

    # Store configuration
    database_path: str = Field(
        default="tracker_sync.sqlite3",
        description="Path to the SQLite database file",
    )

    # TOML config file path; values in the file override the defaults above
    config_file: str | None = Field(
        default=None,
        description="Path to an optional TOML configuration file",
    )

    log_level: str = Field(default="INFO", description="Logging level name")

    @field_validator("upstream_trackers")
    @classmethod
    def validate_upstream_trackers(cls, v: list[str]) -> list[str]:
        """Validate upstream tracker prefixes and strip trailing slashes."""
        normalized = []
        for prefix in v:
            parts = urlsplit(prefix)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                raise ValueError(f"upstream tracker {prefix!r} must be an http(s) URL with a host")
            if parts.query or parts.fragment:
                raise ValueError(f"upstream tracker {prefix!r} must not have a query or fragment")
            normalized.append(prefix.rstrip("/"))
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level is a standard logging level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return level

    @property
    def tracker_update_interval(self) -> timedelta:
        """Minimum time between two synchronizations of the same tracker."""
        return timedelta(minutes=self.tracker_update_interval_minutes)

    @property
    def logging_level(self) -> int:
        """The numeric logging level."""
        level: int = logging.getLevelName(self.log_level)
        return level

    def _load_toml_data(self) -> dict[str, Any]:
        """Load and parse the TOML file, updating upstream and database settings."""
        if not self.config_file:
            raise ValueError("config_file must be set to load a configuration file")

        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        upstream = toml_data.get("upstream", {})
        if "trackers" in upstream:
            self.upstream_trackers = upstream["trackers"]
        if "update_interval_minutes" in upstream:
            self.tracker_update_interval_minutes = upstream["update_interval_minutes"]
        if "timeout_seconds" in upstream:
            self.upstream_timeout_seconds = upstream["timeout_seconds"]

        database = toml_data.get("database", {})
        if "path" in database:
            self.database_path = database["path"]

        logging_section = toml_data.get("logging", {})
        if "level" in logging_section:
            self.log_level = logging_section["level"]

        return toml_data

    def load_config_file(self) -> None:
        """Apply the TOML configuration file, if one is configured.

        Raises:
            FileNotFoundError: If the configured file does not exist.
            ValidationError: If a value in the file is invalid.
        """
        if self.config_file:
            self._load_toml_data()

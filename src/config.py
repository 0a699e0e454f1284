"""Application configuration — env vars, YAML file, defaults."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, EnvSettingsSource


def _repo_root() -> Path:
    """Find the repository root (directory containing pyproject.toml)."""
    current = Path(__file__).resolve().parent.parent
    if (current / "pyproject.toml").exists():
        return current
    return Path.cwd()


REPO_ROOT = _repo_root()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class DatabaseConfig(BaseSettings):
    """MySQL connection parameters."""

    host: str = "localhost"
    port: int = 3306
    name: str = ""
    user: str = ""
    password: str = ""
    charset: str = "utf8mb4"
    connect_timeout: int = 10

    model_config = {"env_prefix": "DBH_DB_", "frozen": True}


class AppConfig(BaseSettings):
    """Top-level configuration, read once when a handler is created."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # Render interpolated queries through DataHandler.log_query
    debug_query: bool = False
    log_level: str = "info"

    # Tried in order when a result cell comes back as raw bytes
    encoding_detect_order: list[str] = Field(
        default_factory=lambda: ["ascii", "utf-8"]
    )

    model_config = {
        "env_prefix": "DBH_",
        "env_nested_delimiter": "__",
        "frozen": True,
    }

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> AppConfig:
        """Load config from YAML file, with env var overrides."""
        if path is None:
            path = REPO_ROOT / "config" / "app.yml"

        values: dict[str, Any] = {}
        if path.exists():
            with open(path) as f:
                values = yaml.safe_load(f) or {}

        # Init kwargs outrank env vars in pydantic-settings, so env is merged in here
        database = dict(values.get("database") or {})
        database.update(EnvSettingsSource(DatabaseConfig)())
        values = _merge(values, {"database": database})
        values = _merge(values, EnvSettingsSource(cls)())
        return cls(**values)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def configure_logging(config: AppConfig) -> None:
    """Configure root logging from the app config."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )

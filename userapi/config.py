"""Configuration management for the user records service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_TITLE = "User API"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP service and its data store."""

    database_path: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    title: str = DEFAULT_TITLE

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from the raw mapping of a YAML document."""

        database = _section(data, "database")
        server = _section(data, "server")
        logging_section = _section(data, "logging")

        raw_path = database.get("path")
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        return Settings(
            database_path=database_path,
            host=str(server.get("host", DEFAULT_HOST)),
            port=_parse_port(server.get("port", DEFAULT_PORT)),
            log_level=_parse_log_level(logging_section.get("level", DEFAULT_LOG_LEVEL)),
            title=str(server.get("title", DEFAULT_TITLE)),
        )


def _section(data: Mapping[str, object], key: str) -> Dict[str, object]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section '{key}' must be a mapping")
    return value


def _parse_port(value: object) -> int:
    try:
        port = int(str(value))
    except ValueError as exc:
        raise ValueError(f"Invalid port {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError(f"Port {port} is outside the range 1-65535")
    return port


def _parse_log_level(value: object) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {value!r}")
    return level


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    """Resolve the path to the optional YAML configuration file."""
    if not env_value:
        return None
    return Path(env_value).expanduser().resolve(strict=False)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from defaults, an optional YAML file and ``USERAPI_*`` variables."""
    env = os.environ if environ is None else environ

    if config_path is None:
        config_path = resolve_config_path(env.get("USERAPI_CONFIG"))

    if config_path is not None:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")
        settings = Settings.from_dict(raw, base_path=config_path.parent)
    else:
        settings = Settings(database_path=resolve_database_path(None))

    if env.get("USERAPI_DB_PATH"):
        settings = replace(settings, database_path=resolve_database_path(env["USERAPI_DB_PATH"]))
    if env.get("USERAPI_HOST"):
        settings = replace(settings, host=env["USERAPI_HOST"].strip())
    if env.get("USERAPI_PORT"):
        settings = replace(settings, port=_parse_port(env["USERAPI_PORT"]))
    if env.get("USERAPI_LOG_LEVEL"):
        settings = replace(settings, log_level=_parse_log_level(env["USERAPI_LOG_LEVEL"]))
    return settings


__all__ = ["Settings", "load_settings", "resolve_config_path"]

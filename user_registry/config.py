"""Configuration management for the user registry service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import yaml

from .store import resolve_store_path

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_LOG_LEVEL = "info"
# Levels understood by both the logging module and uvicorn.
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

CONFIG_ENV_VAR = "USER_REGISTRY_CONFIG"


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by the CLI and the application factories."""

    data_file: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("*",))
    log_level: str = DEFAULT_LOG_LEVEL

    def with_overrides(
        self,
        *,
        host: Optional[str] = None,
        port: Optional[int] = None,
        data_file: Optional[str] = None,
    ) -> "Settings":
        """Return a copy with any explicitly supplied values replaced."""

        changes: Dict[str, object] = {}
        if host:
            changes["host"] = host
        if port is not None:
            changes["port"] = _parse_port(port)
        if data_file:
            changes["data_file"] = resolve_store_path(data_file)
        return replace(self, **changes) if changes else self


def _parse_port(value: object) -> int:
    try:
        port = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid port number: {value!r}") from exc
    if not 0 < port < 65536:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port


def _parse_log_level(value: object) -> str:
    level = str(value).strip().lower()
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {value!r}; expected one of: {', '.join(LOG_LEVELS)}")
    return level


def _parse_origins(value: object) -> Tuple[str, ...]:
    if isinstance(value, str):
        items: List[str] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise ValueError("cors_origins must be a string or a list of strings")
    origins = tuple(item.strip() for item in items if item.strip())
    return origins or ("*",)


def _load_config_file(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Malformed configuration file {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def _resolve_relative(value: str, base_path: Path) -> Path:
    raw_path = Path(value).expanduser()
    if raw_path.is_absolute():
        return raw_path.resolve(strict=False)
    return (base_path / raw_path).resolve(strict=False)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from defaults, an optional YAML file and the environment."""

    env = os.environ if environ is None else environ

    host = DEFAULT_HOST
    port = DEFAULT_PORT
    data_file = resolve_store_path(None)
    cors_origins: Tuple[str, ...] = ("*",)
    log_level = DEFAULT_LOG_LEVEL

    config_value = env.get(CONFIG_ENV_VAR)
    if config_value:
        config_path = Path(config_value).expanduser().resolve(strict=False)
        raw = _load_config_file(config_path)
        if raw.get("host"):
            host = str(raw["host"])
        if raw.get("port") is not None:
            port = _parse_port(raw["port"])
        if raw.get("data_file"):
            data_file = _resolve_relative(str(raw["data_file"]), config_path.parent)
        if raw.get("cors_origins") is not None:
            cors_origins = _parse_origins(raw["cors_origins"])
        if raw.get("log_level"):
            log_level = _parse_log_level(raw["log_level"])

    if env.get("HOST"):
        host = env["HOST"].strip()
    if env.get("PORT"):
        port = _parse_port(env["PORT"])
    if env.get("USER_REGISTRY_DATA_FILE"):
        data_file = resolve_store_path(env["USER_REGISTRY_DATA_FILE"])
    if env.get("USER_REGISTRY_CORS_ORIGINS"):
        cors_origins = _parse_origins(env["USER_REGISTRY_CORS_ORIGINS"])
    if env.get("USER_REGISTRY_LOG_LEVEL"):
        log_level = _parse_log_level(env["USER_REGISTRY_LOG_LEVEL"])

    return Settings(
        data_file=data_file,
        host=host,
        port=port,
        cors_origins=cors_origins,
        log_level=log_level,
    )


__all__ = ["Settings", "load_settings", "DEFAULT_PORT", "CONFIG_ENV_VAR"]

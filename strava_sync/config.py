"""Shared configuration for strava-sync."""
from __future__ import annotations

import os
import time
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

STRAVA_API_BASE = "https://www.strava.com/api/v3"
DATALAKE_ROOT = Path(os.environ.get("DATALAKE_ROOT", str(Path.home() / "datalake.me")))
DEFAULT_DB_PATH = DATALAKE_ROOT / "strava" / "strava_sync.duckdb"
DEFAULT_CREDENTIALS_FILE = Path.home() / ".config" / "strava-sync" / ".env"

ENV_OVERRIDES = {
    "db_path": "STRAVA_SYNC_DB_PATH",
    "credentials_file": "STRAVA_SYNC_CREDENTIALS_FILE",
    "timezone_offset_seconds": "STRAVA_SYNC_TZ_OFFSET_SECONDS",
    "safety_margin_seconds": "STRAVA_SYNC_SAFETY_MARGIN_SECONDS",
    "max_pages": "STRAVA_SYNC_MAX_PAGES",
    "request_timeout": "STRAVA_SYNC_REQUEST_TIMEOUT",
    "redirect_uri": "STRAVA_REDIRECT_URI",
}
INT_SETTINGS = ("timezone_offset_seconds", "safety_margin_seconds", "max_pages")
PATH_SETTINGS = ("db_path", "credentials_file")


def host_timezone_offset() -> int:
    """Seconds to add to a local wall-clock time read as UTC to get real UTC."""
    return -time.localtime().tm_gmtoff


@dataclass(frozen=True)
class Settings:
    db_path: str = str(DEFAULT_DB_PATH)
    credentials_file: str = str(DEFAULT_CREDENTIALS_FILE)
    api_base: str = STRAVA_API_BASE
    # start_date_local is wall-clock time; rides are assumed recorded in the host's zone.
    timezone_offset_seconds: int = field(default_factory=host_timezone_offset)
    # The last captured ride sits exactly at the cutoff; 5 minutes keeps it out of the next fetch.
    safety_margin_seconds: int = 300
    max_pages: int = 500
    request_timeout: float = 30
    redirect_uri: str = "http://localhost"


def _coerce(name: str, value: Any) -> Any:
    if name in INT_SETTINGS:
        return int(value)
    if name == "request_timeout":
        return float(value)
    if name in PATH_SETTINGS:
        return str(Path(str(value)).expanduser())
    return str(value)


def _load_yaml(path: str) -> dict:
    with Path(path).expanduser().open("r", encoding="utf-8") as f:
        payload = yaml.safe_load(f) or {}
    if not isinstance(payload, dict):
        raise SystemExit(f"Expected a mapping in config file {path}")

    known = {item.name for item in fields(Settings)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise SystemExit(f"Unknown settings in {path}: {', '.join(unknown)}")
    empty = sorted(name for name, value in payload.items() if value is None)
    if empty:
        raise SystemExit(f"Settings without a value in {path}: {', '.join(empty)}")

    try:
        return {name: _coerce(name, value) for name, value in payload.items()}
    except (TypeError, ValueError) as exc:
        raise SystemExit(f"Invalid setting in {path}: {exc}") from exc


def load_settings(config_path: str | None = None, **overrides: Any) -> Settings:
    """Build settings from defaults, then environment variables, then the YAML file, then overrides."""
    settings = Settings()

    env_values: dict[str, Any] = {}
    for name, var_name in ENV_OVERRIDES.items():
        raw = os.getenv(var_name)
        if raw:
            env_values[name] = _coerce(name, raw)
    settings = replace(settings, **env_values)

    if config_path:
        settings = replace(settings, **_load_yaml(config_path))

    explicit = {k: _coerce(k, v) for k, v in overrides.items() if v is not None}
    return replace(settings, **explicit)

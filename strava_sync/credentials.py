"""Strava app credentials for the refresh-token exchange.

Each value is taken from the first place that has it: the process
environment, the ``credentials_file`` named in settings, then the macOS
keychain entry for ``strava-sync``.
"""
from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .config import Settings

CLIENT_ID = "STRAVA_CLIENT_ID"
CLIENT_SECRET = "STRAVA_CLIENT_SECRET"
REFRESH_TOKEN = "STRAVA_REFRESH_TOKEN"
CREDENTIAL_NAMES = (CLIENT_ID, CLIENT_SECRET, REFRESH_TOKEN)
KEYCHAIN_SERVICE = "strava-sync"


@dataclass(frozen=True)
class StravaCredentials:
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    sources: dict[str, str] = field(default_factory=dict)
    credentials_file: Path | None = None

    @property
    def values(self) -> dict[str, str]:
        return {
            CLIENT_ID: self.client_id,
            CLIENT_SECRET: self.client_secret,
            REFRESH_TOKEN: self.refresh_token,
        }

    def missing(self) -> list[str]:
        return [name for name, value in self.values.items() if not value]

    def is_complete(self) -> bool:
        return not self.missing()

    def missing_message(self) -> str:
        return (
            f"Missing Strava credentials: {', '.join(self.missing())}\n"
            f"Set them in the environment, in {self.credentials_file}, "
            f"or in the macOS keychain under service '{KEYCHAIN_SERVICE}'."
        )


def read_credentials_file(path: Path) -> dict[str, str]:
    """Strava entries from a dotenv-style file; anything else in it is ignored."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return {}

    found: dict[str, str] = {}
    for line in lines:
        name, sep, value = line.strip().removeprefix("export ").partition("=")
        name = name.strip()
        if not sep or name not in CREDENTIAL_NAMES:
            continue
        found[name] = value.strip().strip("'\"")
    return found


def save_credentials(credentials: StravaCredentials, path: Path) -> Path:
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    body = "".join(f'{name}="{value}"\n' for name, value in credentials.values.items())
    path.write_text(body, encoding="utf-8")
    path.chmod(0o600)
    return path


def keychain_secret(name: str) -> str | None:
    try:
        result = subprocess.run(
            ["security", "find-generic-password", "-w", "-s", KEYCHAIN_SERVICE, "-a", name],
            check=False,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def load_credentials(settings: Settings) -> StravaCredentials:
    credentials_file = Path(settings.credentials_file).expanduser()
    file_values: dict[str, str] | None = None
    values: dict[str, str] = {}
    sources: dict[str, str] = {}

    for name in CREDENTIAL_NAMES:
        value = os.getenv(name)
        source = "environment"
        if not value:
            if file_values is None:
                file_values = read_credentials_file(credentials_file)
            value = file_values.get(name)
            source = f"file:{credentials_file}"
        if not value:
            value = keychain_secret(name)
            source = "keychain"
        if value:
            values[name] = value
            sources[name] = source

    return StravaCredentials(
        client_id=values.get(CLIENT_ID, ""),
        client_secret=values.get(CLIENT_SECRET, ""),
        refresh_token=values.get(REFRESH_TOKEN, ""),
        sources=sources,
        credentials_file=credentials_file,
    )

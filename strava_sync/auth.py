from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import urlencode

import requests

from .config import Settings
from .credentials import StravaCredentials, load_credentials
from .errors import NoAccessError

logger = logging.getLogger(__name__)

STRAVA_TOKEN_URL = "https://www.strava.com/oauth/token"
STRAVA_AUTHORIZE_URL = "https://www.strava.com/oauth/authorize"
STRAVA_SCOPE = "activity:read_all"


class AuthProvider(Protocol):
    def has_access(self) -> bool: ...

    def access_token(self) -> str: ...

    def authorization_url(self) -> str: ...


class StravaAuthProvider:
    """Exchanges a stored refresh token for a short-lived bearer token.

    The token is fetched lazily once per provider and held in memory only.
    Missing credentials or a rejected refresh mean "no access"; the operator
    is then pointed at ``authorization_url()`` to re-authorize the app.
    """

    def __init__(
        self,
        credentials: StravaCredentials,
        session: requests.Session | None = None,
        redirect_uri: str = "http://localhost",
        timeout: float = 60,
    ) -> None:
        self.client_id = credentials.client_id
        self.client_secret = credentials.client_secret
        self.refresh_token = credentials.refresh_token
        self.session = session or requests.Session()
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._token: str | None = None
        self._refresh_attempted = False

    @classmethod
    def from_settings(cls, settings: Settings, session: requests.Session | None = None) -> "StravaAuthProvider":
        return cls(load_credentials(settings), session=session, redirect_uri=settings.redirect_uri)

    def authorization_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "approval_prompt": "force",
            "scope": STRAVA_SCOPE,
        }
        return f"{STRAVA_AUTHORIZE_URL}?{urlencode(params)}"

    def has_access(self) -> bool:
        if self._token is None and not self._refresh_attempted:
            self._token = self._refresh()
        return self._token is not None

    def access_token(self) -> str:
        if not self.has_access():
            raise NoAccessError(self.authorization_url())
        assert self._token is not None
        return self._token

    def _refresh(self) -> str | None:
        self._refresh_attempted = True
        if not (self.client_id and self.client_secret and self.refresh_token):
            logger.warning("Strava credentials incomplete; cannot refresh access token")
            return None

        try:
            response = self.session.post(
                STRAVA_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Token refresh failed: %s", exc)
            return None

        if response.status_code != 200:
            logger.error("Error fetching token: %s - %s", response.status_code, response.text)
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.error("Token endpoint returned a non-JSON body")
            return None
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            logger.error("Token endpoint response has no access_token")
            return None
        return token

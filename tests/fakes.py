from __future__ import annotations

from typing import Any


class FakeResponse:
    def __init__(
        self,
        payload: Any = None,
        status_code: int = 200,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else str(payload)
        self.headers = dict(headers or {})

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Serves queued responses in order and records every request."""

    def __init__(self, responses: list[FakeResponse] | None = None, token_response: FakeResponse | None = None) -> None:
        self.responses = list(responses or [])
        self.token_response = token_response or FakeResponse({"access_token": "token-123"})
        self.get_calls: list[dict[str, Any]] = []
        self.post_calls: list[dict[str, Any]] = []

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def get(self, url, headers=None, params=None, timeout=None):
        self.get_calls.append({"url": url, "headers": headers, "params": dict(params or {}), "timeout": timeout})
        if not self.responses:
            return FakeResponse([])
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, data=None, timeout=None):
        self.post_calls.append({"url": url, "data": data, "timeout": timeout})
        if isinstance(self.token_response, Exception):
            raise self.token_response
        return self.token_response


class FakeAuth:
    def __init__(self, token: str | None = "token-123", url: str = "https://www.strava.com/oauth/authorize?client_id=1") -> None:
        self.token = token
        self.url = url

    def has_access(self) -> bool:
        return self.token is not None

    def access_token(self) -> str:
        assert self.token is not None
        return self.token

    def authorization_url(self) -> str:
        return self.url


def page(count: int, start: int = 0, **fields: Any) -> FakeResponse:
    return FakeResponse([{"id": start + i, **fields} for i in range(count)])


def ride(start_date_local: str, activity_type: str = "Ride", **overrides: Any) -> dict[str, Any]:
    activity = {
        "type": activity_type,
        "name": "Morning Ride",
        "start_date_local": start_date_local,
        "moving_time": 3600,
        "distance": 16093.4,
        "total_elevation_gain": 100,
        "average_speed": 5,
        "max_speed": 10,
        "kilojoules": 512.3,
        "average_heartrate": 141.2,
        "max_heartrate": 172.0,
        "gear_id": "b1234",
        "athlete_count": 1,
    }
    activity.update(overrides)
    return activity

from __future__ import annotations


class NoAccessError(RuntimeError):
    def __init__(self, authorization_url: str, message: str | None = None) -> None:
        super().__init__(message or f"App has no access. Please authorize here: {authorization_url}")
        self.authorization_url = authorization_url


class TransportError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class RateLimitError(TransportError):
    pass


class PageLimitError(TransportError):
    pass


class ParseError(ValueError):
    pass

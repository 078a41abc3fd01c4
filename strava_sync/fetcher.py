from __future__ import annotations

import logging
from typing import Any

import requests

from .config import STRAVA_API_BASE
from .errors import PageLimitError, TransportError
from .rate_limit import StravaRateLimiter

logger = logging.getLogger(__name__)

PAGE_SIZE = 200
DEFAULT_MAX_PAGES = 500
DEFAULT_TIMEOUT = 30


class PaginatedFetcher:
    """Pulls every page of a Strava collection endpoint, one request at a time.

    Pagination stops after the first page that is empty, ``null``, or shorter than
    ``page_size``. Any failed page raises ``TransportError`` and the pages already
    collected for that call are dropped, so a caller never mistakes a truncated
    pull for a complete one.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        base_url: str = STRAVA_API_BASE,
        page_size: int = PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limiter: StravaRateLimiter | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.max_pages = max_pages
        self.timeout = timeout
        self.rate_limiter = rate_limiter

    def fetch_all(
        self,
        endpoint: str,
        params: dict[str, Any] | None,
        token: str,
    ) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        page = 1
        while page <= self.max_pages:
            query = dict(params or {})
            query.update({"page": page, "per_page": self.page_size})

            logger.debug("Fetching page %d of %s", page, endpoint)
            batch = self._get_page(endpoint, query, token)
            if not batch:
                break

            records.extend(item for item in batch if isinstance(item, dict))
            if len(batch) < self.page_size:
                break
            page += 1
        else:
            raise PageLimitError(
                f"Stopped after {self.max_pages} pages of {endpoint} without reaching the end",
                endpoint=endpoint,
            )

        logger.info("Finished fetching %s. Total records found: %d", endpoint, len(records))
        return records

    def _get_page(self, endpoint: str, query: dict[str, Any], token: str) -> list[dict[str, Any]] | None:
        url = f"{self.base_url}{endpoint}"
        if self.rate_limiter:
            self.rate_limiter.before_request()

        try:
            response = self.session.get(
                url,
                headers={"Authorization": f"Bearer {token}"},
                params=query,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Request failed for {endpoint}: {exc}", endpoint=endpoint) from exc

        if self.rate_limiter:
            self.rate_limiter.after_response(response.headers)

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"API request failed for {endpoint} with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                endpoint=endpoint,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Unreadable JSON from {endpoint}", status_code=response.status_code, endpoint=endpoint
            ) from exc

        if payload is None:
            return None
        if not isinstance(payload, list):
            raise TransportError(
                f"Unexpected response shape from {endpoint}: expected a list",
                status_code=response.status_code,
                endpoint=endpoint,
            )
        return payload

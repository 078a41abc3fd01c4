from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, Mapping

from .errors import RateLimitError

logger = logging.getLogger(__name__)

# Strava's read quotas reset on fixed boundaries: every quarter hour and at midnight UTC.
SHORT_WINDOW_SECONDS = 15 * 60
DAILY_WINDOW_SECONDS = 24 * 60 * 60
USAGE_HEADERS = ("X-ReadRateLimit-Usage", "X-RateLimit-Usage")
LIMIT_HEADERS = ("X-ReadRateLimit-Limit", "X-RateLimit-Limit")


def _pair(headers: Mapping[str, str], names: tuple[str, ...]) -> tuple[int, int] | None:
    for name in names:
        raw = headers.get(name)
        if not raw:
            continue
        try:
            short, daily = (int(part.strip()) for part in raw.split(",")[:2])
        except ValueError:
            continue
        return short, daily
    return None


class StravaRateLimiter:
    """Paces reads against Strava's 15-minute and daily quotas.

    Usage is the larger of what this limiter has sent in the current window and
    what Strava last reported in its usage header plus the requests sent since.
    The reported figure covers earlier runs and other clients of the same app,
    so a fresh limiter still knows how much of the day is gone.
    """

    def __init__(
        self,
        short_limit: int = 100,
        daily_limit: int = 1000,
        headroom: int = 2,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.short_limit = short_limit
        self.daily_limit = daily_limit
        self.headroom = headroom
        self._clock = clock
        self._sleep = sleep
        self._sent: deque[float] = deque()
        self._reported: tuple[int, int] | None = None
        self._reported_at: float | None = None
        self._sent_since_report = 0

    def usage(self, now: float | None = None) -> tuple[int, int]:
        now = self._clock() if now is None else now
        short_start = now - now % SHORT_WINDOW_SECONDS
        day_start = now - now % DAILY_WINDOW_SECONDS
        while self._sent and self._sent[0] < day_start:
            self._sent.popleft()

        short_used = sum(1 for sent in self._sent if sent >= short_start)
        daily_used = len(self._sent)
        if self._reported is not None and self._reported_at is not None:
            if self._reported_at >= short_start:
                short_used = max(short_used, self._reported[0] + self._sent_since_report)
            if self._reported_at >= day_start:
                daily_used = max(daily_used, self._reported[1] + self._sent_since_report)
        return short_used, daily_used

    def before_request(self) -> None:
        while True:
            now = self._clock()
            short_used, daily_used = self.usage(now)
            if daily_used >= self.daily_limit - self.headroom:
                raise RateLimitError(
                    f"Strava daily read quota nearly spent ({daily_used}/{self.daily_limit}); retry after midnight UTC."
                )
            if short_used < self.short_limit - self.headroom:
                self._sent.append(now)
                self._sent_since_report += 1
                return

            wait = SHORT_WINDOW_SECONDS - now % SHORT_WINDOW_SECONDS + 1
            logger.info(
                "Strava 15-minute quota at %d/%d; sleeping %ds until the window resets.",
                short_used,
                self.short_limit,
                int(wait),
            )
            self._sleep(wait)

    def after_response(self, headers: Mapping[str, str]) -> None:
        limits = _pair(headers, LIMIT_HEADERS)
        if limits:
            self.short_limit, self.daily_limit = limits
        usage = _pair(headers, USAGE_HEADERS)
        if usage:
            self._reported = usage
            self._reported_at = self._clock()
            self._sent_since_report = 0

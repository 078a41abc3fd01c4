from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from .errors import ParseError
from .sink import TabularSink

logger = logging.getLogger(__name__)


def parse_sink_timestamp(value: Any) -> int:
    """Epoch seconds for a stored ``Date`` cell; naive values are read as UTC."""
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ParseError(f"Unparseable date: {value!r}") from exc
    else:
        raise ParseError(f"Unparseable date: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return int(parsed.timestamp())


class WatermarkTracker:
    """Derives the ``after`` bound for an incremental fetch from the last stored row.

    Strava's ``start_date_local`` is wall-clock time with a misleading ``Z``
    suffix, so ``timezone_offset_seconds`` shifts it back to UTC. The safety
    margin keeps the already-stored record out of the next fetch.
    """

    def __init__(self, timezone_offset_seconds: int = 0, safety_margin_seconds: int = 300) -> None:
        self.timezone_offset_seconds = timezone_offset_seconds
        self.safety_margin_seconds = safety_margin_seconds

    def compute_cutoff(self, sink: TabularSink, table: str, date_index: int = 0) -> int:
        last_row = sink.last_row(table)
        if not last_row:
            logger.info("No rows in %s yet; fetching full history", table)
            return 0

        try:
            timestamp = parse_sink_timestamp(last_row[date_index])
        except (ParseError, IndexError) as exc:
            logger.warning("Could not read last date from %s (%s); fetching full history", table, exc)
            return 0

        cutoff = timestamp + self.timezone_offset_seconds + self.safety_margin_seconds
        return max(0, cutoff)

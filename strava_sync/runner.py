from __future__ import annotations

import duckdb
import requests

from .auth import StravaAuthProvider
from .config import Settings, load_settings
from .credentials import StravaCredentials
from .fetcher import PaginatedFetcher
from .orchestrator import SyncOrchestrator, SyncOutcome
from .rate_limit import StravaRateLimiter
from .sink import DuckDBSink, connect
from .tasks import AllRidesTask, RideTask, SegmentEffortsTask, SyncTask
from .watermark import WatermarkTracker

# One limiter per API base for the life of the process, so consecutive runs share the quota.
_rate_limiters: dict[str, StravaRateLimiter] = {}


def rate_limiter_for(settings: Settings) -> StravaRateLimiter:
    return _rate_limiters.setdefault(settings.api_base, StravaRateLimiter())


def build_orchestrator(
    settings: Settings,
    conn: duckdb.DuckDBPyConnection,
    session: requests.Session,
    credentials: StravaCredentials | None = None,
) -> SyncOrchestrator:
    sink = DuckDBSink(conn)
    sink.init_db()
    if credentials is None:
        auth = StravaAuthProvider.from_settings(settings, session=session)
    else:
        auth = StravaAuthProvider(credentials, session=session, redirect_uri=settings.redirect_uri)
    fetcher = PaginatedFetcher(
        session=session,
        base_url=settings.api_base,
        max_pages=settings.max_pages,
        timeout=settings.request_timeout,
        rate_limiter=rate_limiter_for(settings),
    )
    watermark = WatermarkTracker(
        timezone_offset_seconds=settings.timezone_offset_seconds,
        safety_margin_seconds=settings.safety_margin_seconds,
    )
    return SyncOrchestrator(auth, fetcher, sink, watermark)


def run_task(task: SyncTask, settings: Settings | None = None) -> SyncOutcome:
    settings = settings or load_settings()
    conn = connect(settings.db_path)
    try:
        with requests.Session() as session:
            return build_orchestrator(settings, conn, session).run(task)
    finally:
        conn.close()


def sync_new_rides(settings: Settings | None = None) -> SyncOutcome:
    return run_task(RideTask(), settings)


def sync_all_rides(settings: Settings | None = None) -> SyncOutcome:
    return run_task(AllRidesTask(), settings)


def sync_segment_efforts(segment_id: str, settings: Settings | None = None) -> SyncOutcome:
    return run_task(SegmentEffortsTask(segment_id), settings)

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from .auth import AuthProvider
from .errors import NoAccessError, TransportError
from .fetcher import PaginatedFetcher
from .sink import TabularSink
from .tasks import SyncTask
from .watermark import WatermarkTracker

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    CHECK_AUTH = "check_auth"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    APPENDING = "appending"
    DONE = "done"
    ABORTED_NO_ACCESS = "aborted_no_access"
    ABORTED_EMPTY_FETCH = "aborted_empty_fetch"
    ABORTED_EMPTY_AFTER_FILTER = "aborted_empty_after_filter"
    ABORTED_TRANSPORT = "aborted_transport"


@dataclass(frozen=True)
class SyncOutcome:
    state: SyncState
    task: str
    table: str
    rows_appended: int = 0
    cutoff: int | None = None
    authorization_url: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.state not in (SyncState.ABORTED_NO_ACCESS, SyncState.ABORTED_TRANSPORT)


_table_locks: dict[str, threading.Lock] = {}
_table_locks_guard = threading.Lock()


def table_lock(table: str) -> threading.Lock:
    with _table_locks_guard:
        return _table_locks.setdefault(table, threading.Lock())


class SyncOrchestrator:
    def __init__(
        self,
        auth: AuthProvider,
        fetcher: PaginatedFetcher,
        sink: TabularSink,
        watermark: WatermarkTracker | None = None,
    ) -> None:
        self.auth = auth
        self.fetcher = fetcher
        self.sink = sink
        self.watermark = watermark or WatermarkTracker()

    def run(self, task: SyncTask) -> SyncOutcome:
        if not self.auth.has_access():
            return self._no_access(task, self.auth.authorization_url())

        lock = table_lock(task.table)
        if not lock.acquire(blocking=False):
            # Another run is between fetch and append on this table.
            logger.info("Sync already running for %s; waiting for it to finish", task.table)
            lock.acquire()
        try:
            return self._run_locked(task)
        finally:
            lock.release()

    def _run_locked(self, task: SyncTask) -> SyncOutcome:
        cutoff = self.watermark.compute_cutoff(self.sink, task.table) if task.incremental else 0
        plan = task.fetch_plan(cutoff)
        if task.incremental:
            logger.info("Fetching %s after %d", task.name, cutoff)

        try:
            records = self.fetcher.fetch_all(plan.endpoint, plan.params, self.auth.access_token())
        except NoAccessError as exc:
            return self._no_access(task, exc.authorization_url)
        except TransportError as exc:
            logger.error("Sync %s aborted, nothing written: %s", task.name, exc)
            return SyncOutcome(SyncState.ABORTED_TRANSPORT, task.name, task.table, cutoff=cutoff, message=str(exc))

        if not records:
            logger.info("No new data to process.")
            return SyncOutcome(SyncState.ABORTED_EMPTY_FETCH, task.name, task.table, cutoff=cutoff)

        rows = task.transform(records)
        if not rows:
            logger.info("No data left after formatting.")
            return SyncOutcome(SyncState.ABORTED_EMPTY_AFTER_FILTER, task.name, task.table, cutoff=cutoff)

        appended = self.sink.append_rows(task.table, rows)
        logger.info("Appended %d rows to %s (%d records fetched)", appended, task.table, len(records))
        return SyncOutcome(SyncState.DONE, task.name, task.table, rows_appended=appended, cutoff=cutoff)

    def _no_access(self, task: SyncTask, url: str) -> SyncOutcome:
        logger.warning("App has no access. Please authorize here: %s", url)
        return SyncOutcome(SyncState.ABORTED_NO_ACCESS, task.name, task.table, authorization_url=url)

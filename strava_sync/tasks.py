from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from .sink import RIDES_TABLE, SEGMENT_EFFORTS_TABLE
from .transform import RIDE_KIND, SEGMENT_EFFORT_KIND, transform_rides, transform_segment_efforts

ACTIVITIES_ENDPOINT = "/athlete/activities"
SEGMENT_EFFORTS_ENDPOINT = "/segments/{segment_id}/all_efforts"


def _oldest_first(rows: list[tuple]) -> list[tuple]:
    # The watermark reads the last appended row, so it must be the newest one.
    return sorted(rows, key=lambda row: row[0] or "")


@dataclass(frozen=True)
class FetchPlan:
    endpoint: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RideTask:
    """New rides since the last one stored."""

    name: ClassVar[str] = "new-rides"
    kind: ClassVar[str] = RIDE_KIND
    incremental: ClassVar[bool] = True
    table: str = RIDES_TABLE

    def fetch_plan(self, cutoff: int) -> FetchPlan:
        return FetchPlan(ACTIVITIES_ENDPOINT, {"after": cutoff})

    def transform(self, records: list[dict[str, Any]]) -> list[tuple]:
        return _oldest_first(transform_rides(records))


@dataclass(frozen=True)
class AllRidesTask:
    """Full ride history, no lower bound."""

    name: ClassVar[str] = "all-rides"
    kind: ClassVar[str] = RIDE_KIND
    incremental: ClassVar[bool] = False
    table: str = RIDES_TABLE

    def fetch_plan(self, cutoff: int) -> FetchPlan:
        return FetchPlan(ACTIVITIES_ENDPOINT)

    def transform(self, records: list[dict[str, Any]]) -> list[tuple]:
        # Unbounded history comes back newest first.
        return _oldest_first(transform_rides(records))


@dataclass(frozen=True)
class SegmentEffortsTask:
    segment_id: str
    name: ClassVar[str] = "segment-efforts"
    kind: ClassVar[str] = SEGMENT_EFFORT_KIND
    incremental: ClassVar[bool] = False
    table: str = SEGMENT_EFFORTS_TABLE

    def __post_init__(self) -> None:
        segment_id = str(self.segment_id or "").strip()
        if not segment_id:
            raise ValueError("A segment id is required to fetch segment efforts")
        object.__setattr__(self, "segment_id", segment_id)

    def fetch_plan(self, cutoff: int) -> FetchPlan:
        return FetchPlan(SEGMENT_EFFORTS_ENDPOINT.format(segment_id=self.segment_id))

    def transform(self, records: list[dict[str, Any]]) -> list[tuple]:
        return transform_segment_efforts(records, self.segment_id)


SyncTask = Union[RideTask, AllRidesTask, SegmentEffortsTask]

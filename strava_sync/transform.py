from __future__ import annotations

from typing import Any, Iterable

METERS_TO_MILES = 0.000621371
METERS_TO_FEET = 3.28084
M_PER_S_TO_MPH = 2.23694
SECONDS_PER_MINUTE = 60

RIDE_TYPE = "Ride"

RIDE_COLUMNS = (
    "Date",
    "Name",
    "Time(min)",
    "Distance(mi)",
    "Elevation(ft)",
    "AvgSpeed(mph)",
    "MaxSpeed(mph)",
    "Kilojoules",
    "AvgHR",
    "MaxHR",
    "GearID",
    "AthleteCount",
)
SEGMENT_EFFORT_COLUMNS = ("SegmentID", "Date", "ElapsedTime(s)")

RIDE_KIND = "ride"
SEGMENT_EFFORT_KIND = "segment_effort"


def _scaled(value: Any, factor: float) -> float | None:
    if value is None:
        return None
    return value * factor


def ride_row(activity: dict[str, Any]) -> tuple:
    moving_time = activity.get("moving_time")
    return (
        activity.get("start_date_local"),
        activity.get("name"),
        None if moving_time is None else moving_time / SECONDS_PER_MINUTE,
        _scaled(activity.get("distance"), METERS_TO_MILES),
        _scaled(activity.get("total_elevation_gain"), METERS_TO_FEET),
        _scaled(activity.get("average_speed"), M_PER_S_TO_MPH),
        _scaled(activity.get("max_speed"), M_PER_S_TO_MPH),
        activity.get("kilojoules"),
        activity.get("average_heartrate"),
        activity.get("max_heartrate"),
        activity.get("gear_id"),
        activity.get("athlete_count"),
    )


def segment_effort_row(effort: dict[str, Any], segment_id: str) -> tuple:
    return (segment_id, effort.get("start_date_local"), effort.get("elapsed_time"))


def transform_rides(activities: Iterable[dict[str, Any]]) -> list[tuple]:
    return [ride_row(activity) for activity in activities if activity.get("type") == RIDE_TYPE]


def transform_segment_efforts(efforts: Iterable[dict[str, Any]], segment_id: str) -> list[tuple]:
    # Efforts don't carry their segment id; the caller supplies it.
    return [segment_effort_row(effort, segment_id) for effort in efforts]


def transform(records: Iterable[dict[str, Any]], kind: str, segment_id: str | None = None) -> list[tuple]:
    if kind == RIDE_KIND:
        return transform_rides(records)
    if kind == SEGMENT_EFFORT_KIND:
        if not segment_id:
            raise ValueError("segment_id is required for segment effort rows")
        return transform_segment_efforts(records, segment_id)
    raise ValueError(f"Unsupported record kind: {kind}")

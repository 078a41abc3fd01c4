from __future__ import annotations

import pytest

from strava_sync.sink import RIDES_TABLE, SEGMENT_EFFORTS_TABLE, DuckDBSink


def test_init_db_creates_both_tables(duckdb_conn) -> None:
    sink = DuckDBSink(duckdb_conn)
    sink.init_db()
    sink.init_db()

    tables = {row[0] for row in duckdb_conn.execute("show tables").fetchall()}
    assert {RIDES_TABLE, SEGMENT_EFFORTS_TABLE} <= tables


def test_ride_table_column_order(sink, duckdb_conn) -> None:
    columns = [row[1] for row in duckdb_conn.execute(f"PRAGMA table_info('{RIDES_TABLE}')").fetchall()]
    assert columns == [
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
    ]


def test_last_row_follows_append_order(sink) -> None:
    sink.append_rows(SEGMENT_EFFORTS_TABLE, [("1", "2024-02-01T00:00:00Z", 10), ("1", "2023-01-01T00:00:00Z", 20)])
    sink.append_rows(SEGMENT_EFFORTS_TABLE, [("2", "2022-01-01T00:00:00Z", 30)])

    assert sink.last_row(SEGMENT_EFFORTS_TABLE) == ("2", "2022-01-01T00:00:00Z", 30)
    assert sink.row_count(SEGMENT_EFFORTS_TABLE) == 3
    assert [row[0] for row in sink.rows(SEGMENT_EFFORTS_TABLE)] == ["1", "1", "2"]


def test_last_row_of_missing_table_is_none(duckdb_conn) -> None:
    sink = DuckDBSink(duckdb_conn)
    assert sink.last_row(RIDES_TABLE) is None
    assert sink.row_count(RIDES_TABLE) == 0


def test_append_rejects_wrong_width_without_writing(sink) -> None:
    with pytest.raises(ValueError):
        sink.append_rows(SEGMENT_EFFORTS_TABLE, [("1", "2024-02-01T00:00:00Z", 10), ("1", "2024-02-01")])
    assert sink.row_count(SEGMENT_EFFORTS_TABLE) == 0


def test_failed_batch_is_rolled_back(sink) -> None:
    with pytest.raises(Exception):
        sink.append_rows(SEGMENT_EFFORTS_TABLE, [("1", "2024-02-01T00:00:00Z", 10), ("1", "2024-02-02T00:00:00Z", "slow")])
    assert sink.row_count(SEGMENT_EFFORTS_TABLE) == 0

    sink.append_rows(SEGMENT_EFFORTS_TABLE, [("1", "2024-02-01T00:00:00Z", 10)])
    assert sink.row_count(SEGMENT_EFFORTS_TABLE) == 1


def test_unknown_table_is_rejected(sink) -> None:
    with pytest.raises(ValueError):
        sink.last_row("activities")


def test_export_parquet_writes_one_file_per_table(sink, tmp_path) -> None:
    sink.append_rows(SEGMENT_EFFORTS_TABLE, [("1", "2024-02-01T00:00:00Z", 10)])

    written = sink.export_parquet(tmp_path / "export")

    assert sorted(path.name for path in written) == ["raw_data.parquet", "segment_effort_data.parquet"]
    assert all(path.exists() for path in written)

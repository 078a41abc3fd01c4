from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, Sequence

import duckdb

from .transform import RIDE_COLUMNS, SEGMENT_EFFORT_COLUMNS

RIDES_TABLE = "raw_data"
SEGMENT_EFFORTS_TABLE = "segment_effort_data"

TABLE_COLUMNS = {
    RIDES_TABLE: RIDE_COLUMNS,
    SEGMENT_EFFORTS_TABLE: SEGMENT_EFFORT_COLUMNS,
}

DDL = """
create table if not exists raw_data (
    "Date" varchar,
    "Name" varchar,
    "Time(min)" double,
    "Distance(mi)" double,
    "Elevation(ft)" double,
    "AvgSpeed(mph)" double,
    "MaxSpeed(mph)" double,
    "Kilojoules" double,
    "AvgHR" double,
    "MaxHR" double,
    "GearID" varchar,
    "AthleteCount" integer
);

create table if not exists segment_effort_data (
    "SegmentID" varchar,
    "Date" varchar,
    "ElapsedTime(s)" integer
);
"""


class TabularSink(Protocol):
    def last_row(self, table: str) -> tuple | None: ...

    def append_rows(self, table: str, rows: Sequence[Sequence[Any]]) -> int: ...

    def row_count(self, table: str) -> int: ...


def connect(db_path: str) -> duckdb.DuckDBPyConnection:
    if db_path != ":memory:":
        Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(db_path)


def _quoted(columns: Sequence[str]) -> str:
    return ", ".join(f'"{column}"' for column in columns)


def _columns_for(table: str) -> tuple[str, ...]:
    try:
        return TABLE_COLUMNS[table]
    except KeyError:
        raise ValueError(f"Unknown table: {table}") from None


class DuckDBSink:
    """Append-only store for synced rows, one DuckDB table per record kind.

    Tables have no ordering column; ``rowid`` follows insertion order because
    rows are only ever appended.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self.conn = conn

    def init_db(self) -> None:
        self.conn.execute(DDL)

    def table_exists(self, table: str) -> bool:
        row = self.conn.execute(
            "select count(*) from information_schema.tables where table_name = ?",
            [table],
        ).fetchone()
        return bool(row and row[0])

    def last_row(self, table: str) -> tuple | None:
        columns = _columns_for(table)
        if not self.table_exists(table):
            return None
        return self.conn.execute(
            f"select {_quoted(columns)} from {table} order by rowid desc limit 1"
        ).fetchone()

    def row_count(self, table: str) -> int:
        _columns_for(table)
        if not self.table_exists(table):
            return 0
        return self.conn.execute(f"select count(*) from {table}").fetchone()[0]

    def rows(self, table: str) -> list[tuple]:
        columns = _columns_for(table)
        if not self.table_exists(table):
            return []
        return self.conn.execute(f"select {_quoted(columns)} from {table} order by rowid").fetchall()

    def append_rows(self, table: str, rows: Sequence[Sequence[Any]]) -> int:
        columns = _columns_for(table)
        if not rows:
            return 0
        for row in rows:
            if len(row) != len(columns):
                raise ValueError(f"{table} rows need {len(columns)} fields, got {len(row)}")

        placeholders = ", ".join("?" for _ in columns)
        self.conn.execute("begin transaction")
        try:
            self.conn.executemany(
                f"insert into {table} ({_quoted(columns)}) values ({placeholders})",
                [list(row) for row in rows],
            )
        except Exception:
            self.conn.execute("rollback")
            raise
        self.conn.execute("commit")
        return len(rows)

    def export_parquet(self, out_dir: Path) -> list[Path]:
        out_dir.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        for table in TABLE_COLUMNS:
            if not self.table_exists(table):
                continue
            out_path = out_dir / f"{table}.parquet"
            target = out_path.as_posix().replace("'", "''")
            self.conn.execute(f"COPY {table} TO '{target}' (FORMAT 'parquet')")
            written.append(out_path)
        return written

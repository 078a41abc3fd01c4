import duckdb
import pytest

from strava_sync.sink import DuckDBSink


@pytest.fixture
def duckdb_conn():
    conn = duckdb.connect(":memory:")
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def sink(duckdb_conn):
    sink = DuckDBSink(duckdb_conn)
    sink.init_db()
    return sink

"""Incremental Strava ride and segment-effort sync into DuckDB."""

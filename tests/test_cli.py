from __future__ import annotations

import pytest

from strava_sync import cli
from strava_sync.credentials import StravaCredentials
from strava_sync.orchestrator import SyncOutcome, SyncState


def test_init_db_creates_database(tmp_path, capsys) -> None:
    db_path = tmp_path / "nested" / "strava.duckdb"

    assert cli.main(["--db-path", str(db_path), "init-db"]) == 0

    assert db_path.exists()
    assert "Initialized DB" in capsys.readouterr().out


def test_segment_efforts_dispatch(tmp_path, monkeypatch, capsys) -> None:
    calls = []

    def fake_sync(segment_id, settings):
        calls.append((segment_id, settings.db_path))
        return SyncOutcome(SyncState.DONE, "segment-efforts", "segment_effort_data", rows_appended=5)

    monkeypatch.setattr(cli, "sync_segment_efforts", fake_sync)

    code = cli.main(["--db-path", str(tmp_path / "s.duckdb"), "segment-efforts", "--segment-id", "141491"])

    assert code == 0
    assert calls == [("141491", str(tmp_path / "s.duckdb"))]
    assert "rows=5" in capsys.readouterr().out


def test_no_access_exits_non_zero_and_prints_url(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(
        cli,
        "sync_new_rides",
        lambda settings: SyncOutcome(
            SyncState.ABORTED_NO_ACCESS, "new-rides", "raw_data", authorization_url="https://auth.example/x"
        ),
    )

    assert cli.main(["--db-path", str(tmp_path / "s.duckdb"), "new-rides"]) == 1
    assert "https://auth.example/x" in capsys.readouterr().out


def test_empty_fetch_is_not_a_failure(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(
        cli,
        "sync_all_rides",
        lambda settings: SyncOutcome(SyncState.ABORTED_EMPTY_FETCH, "all-rides", "raw_data"),
    )

    assert cli.main(["--db-path", str(tmp_path / "s.duckdb"), "all-rides"]) == 0


def test_blank_segment_id_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["segment-efforts", "--segment-id", "  "])
    assert excinfo.value.code == 2


def test_check_credentials_lists_sources(monkeypatch, capsys) -> None:
    sources = {"STRAVA_CLIENT_ID": "environment", "STRAVA_CLIENT_SECRET": "keychain", "STRAVA_REFRESH_TOKEN": "keychain"}
    found = StravaCredentials(client_id="1", client_secret="2", refresh_token="3", sources=sources)
    monkeypatch.setattr(cli, "load_credentials", lambda settings: found)

    assert cli.main(["check-credentials"]) == 0
    out = capsys.readouterr().out
    assert "- STRAVA_CLIENT_ID: environment" in out
    assert "- STRAVA_REFRESH_TOKEN: keychain" in out


def test_install_credentials_requires_complete_set(monkeypatch) -> None:
    monkeypatch.setattr(cli, "load_credentials", lambda settings: StravaCredentials(client_id="1"))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["install-credentials", "--credentials-file", "/nonexistent/.env"])
    assert "Missing Strava credentials" in str(excinfo.value.code)


def test_install_credentials_writes_the_configured_file(tmp_path, monkeypatch, capsys) -> None:
    target = tmp_path / "conf" / ".env"
    monkeypatch.setenv("STRAVA_SYNC_CREDENTIALS_FILE", str(target))
    monkeypatch.setattr(
        cli,
        "load_credentials",
        lambda settings: StravaCredentials(client_id="1", client_secret="2", refresh_token="3"),
    )

    assert cli.main(["install-credentials"]) == 0

    assert 'STRAVA_REFRESH_TOKEN="3"' in target.read_text(encoding="utf-8")
    assert str(target) in capsys.readouterr().out

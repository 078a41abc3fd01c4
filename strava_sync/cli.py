from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .config import load_settings
from .credentials import CREDENTIAL_NAMES, load_credentials, save_credentials
from .orchestrator import SyncOutcome
from .runner import sync_all_rides, sync_new_rides, sync_segment_efforts
from .sink import DuckDBSink, connect

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="strava-sync", description="Append new Strava rides and segment efforts to DuckDB")
    parser.add_argument("--config", help="Optional YAML settings file")
    parser.add_argument("--db-path", help="DuckDB file (overrides config and STRAVA_SYNC_DB_PATH)")
    parser.add_argument("--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db")
    subparsers.add_parser("new-rides", help="Fetch rides newer than the last stored one")
    subparsers.add_parser("all-rides", help="Fetch the full ride history")

    efforts_parser = subparsers.add_parser("segment-efforts", help="Fetch every effort on one segment")
    efforts_parser.add_argument("--segment-id", required=True)

    export_parser = subparsers.add_parser("export-parquet")
    export_parser.add_argument("--out-dir", required=True)

    subparsers.add_parser(
        "check-credentials",
        help="Validate credential discovery and exit without calling the Strava API.",
    )
    install_parser = subparsers.add_parser(
        "install-credentials",
        help="Write discovered credentials to a stable .env file for automated runs.",
    )
    install_parser.add_argument(
        "--credentials-file",
        help="Path to write (default: the credentials_file setting).",
    )
    return parser


def _report(outcome: SyncOutcome) -> int:
    print(f"{outcome.task}: {outcome.state.value} rows={outcome.rows_appended}")
    if outcome.authorization_url:
        print(f"Authorize the app here, then re-run: {outcome.authorization_url}")
    return 0 if outcome.ok else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "segment-efforts" and not args.segment_id.strip():
        parser.error("--segment-id must not be blank")
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    settings = load_settings(args.config, db_path=args.db_path)

    if args.command in ("check-credentials", "install-credentials"):
        credentials = load_credentials(settings)
        if not credentials.is_complete():
            raise SystemExit(credentials.missing_message())

        if args.command == "install-credentials":
            target = Path(args.credentials_file or settings.credentials_file)
            written = save_credentials(credentials, target)
            print(f"Wrote Strava credentials to {written}")
            print("Run check-credentials to confirm automation discovery.")
            return 0

        print("Strava credentials available for automated runs:")
        for name in CREDENTIAL_NAMES:
            print(f"- {name}: {credentials.sources[name]}")
        return 0

    if args.command in ("init-db", "export-parquet"):
        conn = connect(settings.db_path)
        try:
            sink = DuckDBSink(conn)
            sink.init_db()
            if args.command == "init-db":
                print(f"Initialized DB at {settings.db_path}")
                return 0
            for path in sink.export_parquet(Path(args.out_dir).expanduser()):
                print(f"Wrote {path}")
            return 0
        finally:
            conn.close()

    if args.command == "new-rides":
        return _report(sync_new_rides(settings))
    if args.command == "all-rides":
        return _report(sync_all_rides(settings))
    if args.command == "segment-efforts":
        return _report(sync_segment_efforts(args.segment_id, settings))

    raise ValueError(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())

"""Maintenance commands: python -m focustrack <command>.

    rollover          finalize shares dated before today (run after midnight)
    replay            retry aggregation of stopped sessions left pending
    active OWNER      print the owner's active session as JSON
    stats OWNER       print the owner's DailyStat for today (or --date)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date

from .database.db import configure_engine, init_db
from .settings import load_settings
from .tracking.payloads import session_to_dict, summary_to_dict
from .tracking.service import FocusService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focustrack", description=__doc__.splitlines()[0])
    parser.add_argument("-v", "--verbose", action="store_true", help="log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("rollover", help="aggregate shares dated before today")
    sub.add_parser("replay", help="retry pending aggregations")

    active = sub.add_parser("active", help="show the active session")
    active.add_argument("owner")

    stats = sub.add_parser("stats", help="show a day's stats")
    stats.add_argument("owner")
    stats.add_argument("--date", type=date.fromisoformat, default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    configure_engine(settings.database_url)
    init_db()
    service = FocusService(settings)

    if args.command == "rollover":
        print(f"{service.roll_over()} sessions updated")
    elif args.command == "replay":
        done = service.replay_pending()
        print(f"{len(done)} sessions replayed")
    elif args.command == "active":
        session = service.get_active_session(args.owner)
        payload = session_to_dict(session, service.now()) if session else None
        print(json.dumps(payload, indent=2))
    elif args.command == "stats":
        print(json.dumps(summary_to_dict(service.get_daily_stats(args.owner, args.date)), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

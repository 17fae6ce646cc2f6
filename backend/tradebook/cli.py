# tradebook/cli.py
"""
Command line entry point.

    python -m tradebook.cli init-db
    python -m tradebook.cli rebuild                      # current month
    python -m tradebook.cli rebuild --month 2025-08
    python -m tradebook.cli rebuild --start 2025-08-01 --end 2025-08-15
    python -m tradebook.cli serve --port 8000

Exit codes: 0 clean, 1 finished with per-day/row errors, 2 fatal (no DB connection).
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime
from typing import Optional, Sequence

import uvicorn

from tradebook.config.settings import get_settings
from tradebook.db.engine import engine_from_settings
from tradebook.db.session import make_session_factory
from tradebook.models import init_db
from tradebook.pnl.rebuild import DatabaseUnavailableError, PnlRebuilder, month_bounds
from tradebook.services.logger import setup_logging

log = logging.getLogger("tradebook.cli")

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FATAL = 2


def _parse_day(s: str) -> date:
    try:
        return date.fromisoformat(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {s!r}")


def _parse_month(s: str) -> tuple[int, int]:
    try:
        d = datetime.strptime(s, "%Y-%m")
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {s!r}")
    return d.year, d.month


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tradebook", description="iTradeBook daily P&L tools")
    p.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create tables that do not exist yet")

    rb = sub.add_parser("rebuild", help="recompute pl_report_daily")
    grp = rb.add_mutually_exclusive_group()
    grp.add_argument("--month", type=_parse_month, help="YYYY-MM (default: current month)")
    grp.add_argument("--start", type=_parse_day, help="first day, YYYY-MM-DD (needs --end)")
    rb.add_argument("--end", type=_parse_day, help="last day, YYYY-MM-DD (inclusive)")

    sv = sub.add_parser("serve", help="run the HTTP API")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", type=int, default=8000)
    return p


def resolve_range(args: argparse.Namespace, today: Optional[date] = None) -> tuple[date, date]:
    if args.start is not None or args.end is not None:
        if args.start is None or args.end is None:
            raise SystemExit("--start and --end must be given together")
        if args.end < args.start:
            raise SystemExit("--end is before --start")
        return args.start, args.end
    if args.month is not None:
        return month_bounds(*args.month)
    today = today or date.today()
    return month_bounds(today.year, today.month)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level)

    if args.command == "serve":
        uvicorn.run("tradebook.main:create_app", factory=True, host=args.host, port=args.port)
        return EXIT_OK

    engine = engine_from_settings(settings)
    try:
        if args.command == "init-db":
            init_db(engine)
            log.info("Database initialized")
            return EXIT_OK

        start_day, end_day = resolve_range(args)
        rebuilder = PnlRebuilder.from_settings(make_session_factory(engine), settings)
        try:
            summary = rebuilder.rebuild_range(start_day, end_day)
        except DatabaseUnavailableError as e:
            log.error(f"Rebuild aborted: {e}")
            return EXIT_FATAL

        print(json.dumps({"start_date": start_day.isoformat(), "end_date": end_day.isoformat(), **summary.to_dict()}, indent=2))
        return EXIT_OK if summary.ok else EXIT_PARTIAL
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())

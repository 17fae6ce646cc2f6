# tradebook/pnl/rebuild.py
"""
Daily P&L rebuild.

For every calendar day in a range: read that day's trading_data rows, the
customer account aggregates as of the day and the previous day's closing
figures, build one report row per symbol and replace the stored rows.

One session/transaction per day. A day that fails is rolled back and
recorded; only failing to acquire a connection at all aborts the range.
"""
from __future__ import annotations

import calendar
import logging
import time
from datetime import date, timedelta
from typing import Callable, Iterator, List, Optional

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from tradebook.config.settings import Settings
from tradebook.infra import metrics as met
from tradebook.utils.retry import RetryPolicy
from . import repository as repo
from .calculator import build_report_row
from .domain import DailyReportRow, RebuildError, RebuildSummary

log = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class DatabaseUnavailableError(RuntimeError):
    """No connection could be acquired after every retry; the whole range aborts."""


def iter_days(start_day: date, end_day: date) -> Iterator[date]:
    cur = start_day
    while cur <= end_day:
        yield cur
        cur = cur + timedelta(days=1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


class PnlRebuilder:
    def __init__(
        self,
        session_factory: SessionFactory,
        retry: Optional[RetryPolicy] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._retry = retry or RetryPolicy()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, session_factory: SessionFactory, settings: Settings) -> "PnlRebuilder":
        return cls(
            session_factory,
            RetryPolicy(
                attempts=settings.db_connect_attempts,
                base_delay=settings.db_connect_base_delay_sec,
                max_delay=settings.db_connect_max_delay_sec,
            ),
        )

    # ─────────────────────────── connection ───────────────────────────

    def _open_session(self) -> Session:
        db = self._session_factory()
        try:
            db.connection()  # forces a pool checkout so failures surface here
        except Exception:
            db.close()
            raise
        return db

    def _acquire(self) -> Session:
        try:
            return self._retry.call(
                self._open_session,
                retry_on=(OperationalError, DBAPIError),
                sleep=self._sleep,
                on_retry=lambda *_: met.db_connect_retries_total.inc(),
                what="db connect",
            )
        except (OperationalError, DBAPIError) as e:
            raise DatabaseUnavailableError(
                f"could not acquire a database connection after {self._retry.attempts} attempts: {e}"
            ) from e

    # ─────────────────────────── public API ───────────────────────────

    def rebuild_range(self, start_day: date, end_day: date) -> RebuildSummary:
        """
        Rebuild every day in [start_day, end_day] sequentially.
        Raises DatabaseUnavailableError only; everything else ends up in the summary.
        """
        summary = RebuildSummary()
        if end_day < start_day:
            return summary

        log.info(f"P&L rebuild {start_day} → {end_day} started")
        t0 = time.perf_counter()
        try:
            for day in iter_days(start_day, end_day):
                summary.merge(self._rebuild_one(day))
        finally:
            met.rebuild_duration_seconds.observe(time.perf_counter() - t0)
            met.rebuild_last_finished_ts.set(time.time())

        log.info(
            f"P&L rebuild {start_day} → {end_day} done: processed={summary.processed} "
            f"skipped={summary.skipped} rows={summary.rows_written} errors={len(summary.errors)}"
        )
        return summary

    def rebuild_day(self, day: date) -> RebuildSummary:
        return self.rebuild_range(day, day)

    def rebuild_month(self, year: int, month: int) -> RebuildSummary:
        start_day, end_day = month_bounds(year, month)
        return self.rebuild_range(start_day, end_day)

    # ─────────────────────────── per day ──────────────────────────────

    def _build_rows(self, db: Session, day: date, summary: RebuildSummary) -> Optional[List[DailyReportRow]]:
        trades = repo.fetch_trade_rows(db, day)
        if not trades:
            return None

        exp_data = repo.fetch_account_aggregates(db, day)
        prior = repo.fetch_prior_day_balances(db, day)

        rows: List[DailyReportRow] = []
        for trade in trades:
            try:
                rows.append(build_report_row(trade, exp_data.get(trade.symbol_ref), prior))
            except Exception as e:
                log.error(f"P&L rebuild {day} {trade.symbol_ref}: row dropped: {e}")
                met.rebuild_row_errors_total.inc()
                summary.errors.append(RebuildError(date=day, symbol=trade.symbol_ref, message=str(e)))
        return rows

    @staticmethod
    def _rollback_quietly(db: Session, day: date) -> None:
        try:
            db.rollback()
        except SQLAlchemyError as e:
            # connection already gone; closing the session discards the transaction
            log.warning(f"P&L rebuild {day}: rollback failed: {e}")

    def _rebuild_one(self, day: date) -> RebuildSummary:
        summary = RebuildSummary()
        db = self._acquire()
        try:
            rows = self._build_rows(db, day, summary)
            if rows is None:
                db.rollback()
                summary.skipped += 1
                met.rebuild_days_total.labels(outcome="skipped").inc()
                log.debug(f"P&L rebuild {day}: no trading data, skipped")
                return summary

            written = repo.replace_report_rows(db, rows)
            db.commit()
        except Exception as e:
            self._rollback_quietly(db, day)
            met.rebuild_days_total.labels(outcome="failed").inc()
            log.error(f"P&L rebuild {day}: rolled back: {e}")
            summary.errors.append(RebuildError(date=day, message=str(e)))
            return summary
        finally:
            db.close()

        summary.processed += 1
        summary.rows_written += written
        met.rebuild_days_total.labels(outcome="processed").inc()
        met.rebuild_rows_written_total.inc(written)
        log.info(f"P&L rebuild {day}: {written} rows written")
        return summary

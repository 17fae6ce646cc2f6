# tradebook/pnl/repository.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from tradebook.config.constants import REPORT_TOTAL_FIELDS
from tradebook.models.customer_data import CustomerData
from tradebook.models.pl_report_daily import PlReportDaily
from tradebook.models.sub_users import SubUser
from tradebook.models.trading_data import TradingData
from .calculator import round_money, to_decimal
from .domain import AccountAggregate, CompanyBalance, DailyReportRow, PriorDayBalances, TradeRow


# ─────────────────────────────── Query helpers ───────────────────────────────

def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """
    Inclusive-exclusive bounds for a calendar day: [00:00, next day 00:00).
    Naive datetimes, matching how the feed stores timestamps.
    """
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def _symbol_present(col):
    return and_(col.is_not(None), col != "")


def _latest_per_symbol(db: Session, day: date) -> Dict[str, TradingData]:
    """
    trading_data rows of `day`, one per symbol_ref.
    If the feed wrote several rows for a symbol that day, the latest (date, id) wins.
    """
    start, end = day_bounds(day)
    q = (
        select(TradingData)
        .where(TradingData.date >= start)
        .where(TradingData.date < end)
        .where(_symbol_present(TradingData.symbol_ref))
        .order_by(TradingData.symbol_ref.asc(), TradingData.date.asc(), TradingData.id.asc())
    )
    latest: Dict[str, TradingData] = {}
    for row in db.execute(q).scalars():
        latest[row.symbol_ref] = row
    return latest


# ─────────────────────────────── Read interfaces ─────────────────────────────

def fetch_trade_rows(db: Session, day: date) -> List[TradeRow]:
    """One coerced TradeRow per symbol traded on `day`, sorted by symbol."""
    out: List[TradeRow] = []
    for sym, r in sorted(_latest_per_symbol(db, day).items()):
        out.append(
            TradeRow(
                trade_date=day,
                symbol_ref=sym,
                mktprice=to_decimal(r.mktprice),
                buysize1=to_decimal(r.buysize1),
                sellsize1=to_decimal(r.sellsize1),
                buyprice1=to_decimal(r.buyprice1),
                sellprice1=to_decimal(r.sellprice1),
                buysize2=to_decimal(r.buysize2),
                sellsize2=to_decimal(r.sellsize2),
                buyprice2=to_decimal(r.buyprice2),
                sellprice2=to_decimal(r.sellprice2),
                company_balance=to_decimal(r.balance),
                company_equity=to_decimal(r.equity),
                company_floating=to_decimal(r.floating),
            )
        )
    return out


def fetch_account_aggregates(db: Session, day: date) -> Dict[str, AccountAggregate]:
    """
    Per symbol: sum of the latest customer_data snapshot (created_at before the
    end of `day`) of every sub-account mapped to it.

    Latest = rank 1 of ROW_NUMBER() OVER (PARTITION BY mt5 ORDER BY created_at DESC, id DESC).
    Mapped sub-accounts with no snapshot yet contribute zero.
    """
    _, end = day_bounds(day)

    ranked = (
        select(
            CustomerData.mt5.label("mt5"),
            CustomerData.balance.label("balance"),
            CustomerData.equity.label("equity"),
            CustomerData.floating.label("floating"),
            CustomerData.profit_loss.label("profit_loss"),
            func.row_number()
            .over(
                partition_by=CustomerData.mt5,
                order_by=(CustomerData.created_at.desc(), CustomerData.id.desc()),
            )
            .label("rn"),
        )
        .where(CustomerData.created_at < end)
        .subquery("cd")
    )

    q = (
        select(
            SubUser.symbol_ref,
            func.coalesce(func.sum(func.coalesce(ranked.c.balance, 0)), 0),
            func.coalesce(func.sum(func.coalesce(ranked.c.equity, 0)), 0),
            func.coalesce(func.sum(func.coalesce(ranked.c.floating, 0)), 0),
            func.coalesce(func.sum(func.coalesce(ranked.c.profit_loss, 0)), 0),
        )
        .select_from(SubUser)
        .outerjoin(ranked, and_(SubUser.sub_username == ranked.c.mt5, ranked.c.rn == 1))
        .where(_symbol_present(SubUser.symbol_ref))
        .group_by(SubUser.symbol_ref)
    )

    out: Dict[str, AccountAggregate] = {}
    for sym, bal, eq, flt, pl in db.execute(q).all():
        out[sym] = AccountAggregate(
            balance=to_decimal(bal),
            equity=to_decimal(eq),
            floating=to_decimal(flt),
            profit_loss=to_decimal(pl),
        )
    return out


def fetch_prior_day_balances(db: Session, day: date) -> PriorDayBalances:
    """
    Closing figures of `day - 1`:
      company: that day's trading_data balance/equity per symbol
      exp:     account aggregate balance per symbol as of that day
    """
    yesterday = day - timedelta(days=1)
    prior = PriorDayBalances()
    for sym, r in _latest_per_symbol(db, yesterday).items():
        prior.company[sym] = CompanyBalance(balance=to_decimal(r.balance), equity=to_decimal(r.equity))
    for sym, agg in fetch_account_aggregates(db, yesterday).items():
        prior.exp[sym] = agg.balance
    return prior


# ─────────────────────────────── Write interface ─────────────────────────────

def replace_report_rows(db: Session, rows: Iterable[DailyReportRow]) -> int:
    """
    Delete-then-insert each (trade_date, symbol_ref) key.

    Deliberately not a native upsert: exactly one row per key regardless of
    the backend's upsert semantics. Runs inside the caller's transaction;
    nothing is committed here.
    """
    written = 0
    for row in rows:
        db.execute(
            delete(PlReportDaily)
            .where(PlReportDaily.trade_date == row.trade_date)
            .where(PlReportDaily.symbol_ref == row.symbol_ref)
        )
        db.add(PlReportDaily(**row.to_columns()))
        written += 1
    db.flush()
    return written


# ─────────────────────────────── Report reads ────────────────────────────────

def _apply_month_scope(query, year: int, month: int, symbols: Optional[Sequence[str]]):
    query = query.where(PlReportDaily.year == year).where(PlReportDaily.month == month)
    query = query.where(PlReportDaily.is_finalized.is_(True))
    if symbols:
        query = query.where(PlReportDaily.symbol_ref.in_(list(symbols)))
    return query


def fetch_report_years(db: Session) -> List[int]:
    q = (
        select(PlReportDaily.year)
        .distinct()
        .where(PlReportDaily.is_finalized.is_(True))
        .order_by(PlReportDaily.year.desc())
    )
    return [int(y) for (y,) in db.execute(q).all()]


def fetch_report_symbols(db: Session) -> List[str]:
    q = (
        select(PlReportDaily.symbol_ref)
        .distinct()
        .where(PlReportDaily.is_finalized.is_(True))
        .order_by(PlReportDaily.symbol_ref.asc())
    )
    return [s for (s,) in db.execute(q).all()]


def fetch_report_page(
    db: Session,
    year: int,
    month: int,
    symbols: Optional[Sequence[str]] = None,
    *,
    limit: int = 31,
    offset: int = 0,
) -> List[PlReportDaily]:
    q = select(PlReportDaily).order_by(PlReportDaily.trade_date.desc(), PlReportDaily.symbol_ref.asc())
    q = _apply_month_scope(q, year, month, symbols).limit(limit).offset(offset)
    return list(db.execute(q).scalars())


def count_report_rows(db: Session, year: int, month: int, symbols: Optional[Sequence[str]] = None) -> int:
    q = _apply_month_scope(select(func.count(PlReportDaily.id)), year, month, symbols)
    return int(db.execute(q).scalar_one() or 0)


def sum_report_totals(
    db: Session,
    year: int,
    month: int,
    symbols: Optional[Sequence[str]] = None,
) -> Dict[str, Decimal]:
    cols = [func.coalesce(func.sum(getattr(PlReportDaily, name)), 0) for name in REPORT_TOTAL_FIELDS]
    q = _apply_month_scope(select(*cols), year, month, symbols)
    values = db.execute(q).one()
    return {f"{name}_total": round_money(v) for name, v in zip(REPORT_TOTAL_FIELDS, values)}

# tradebook/pnl/service.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from tradebook.models.pl_report_daily import PlReportDaily
from . import repository as repo

_ROW_FIELDS = (
    "mktprice", "buysize1", "sellsize1", "buysize2", "sellsize2",
    "buyprice1", "sellprice1", "buyprice2", "sellprice2",
    "company_balance", "company_equity", "company_floating", "company_pln",
    "company_realized", "company_unrealized",
    "exp_balance", "exp_equity", "exp_floating", "exp_pln",
    "exp_realized", "exp_unrealized",
    "accn_pf", "daily_company_total", "daily_exp_total", "daily_grand_total",
)


def row_to_dict(row: PlReportDaily) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "trade_date": row.trade_date.isoformat(),
        "symbol_ref": row.symbol_ref,
        "is_finalized": bool(row.is_finalized),
    }
    for name in _ROW_FIELDS:
        out[name] = float(getattr(row, name) or 0)
    return out


def parse_symbols(raw: Optional[str]) -> List[str]:
    """'A, B,,C' -> ['A', 'B', 'C']"""
    if not raw:
        return []
    return [s.strip() for s in raw.split(",") if s.strip()]


@dataclass
class DailyReportPage:
    data: List[Dict[str, Any]]
    totals: Dict[str, float]
    pagination: Dict[str, int]
    filters: Dict[str, Any] = field(default_factory=dict)


class PlReportService:
    """
    Read side of pl_report_daily: monthly pages, totals and filter options.

    Stateless; all state lives in the DB.
    """

    def __init__(self, page_size: int = 31) -> None:
        self.page_size = page_size

    def get_years(self, db: Session, *, now: Optional[datetime] = None) -> List[int]:
        years = repo.fetch_report_years(db)
        current = (now or datetime.now(timezone.utc)).year
        if current not in years:
            years.insert(0, current)
        return years

    def get_symbols(self, db: Session) -> List[str]:
        return repo.fetch_report_symbols(db)

    def get_daily(
        self,
        db: Session,
        year: int,
        month: int,
        symbols: Optional[Sequence[str]] = None,
        page: int = 1,
    ) -> DailyReportPage:
        page = max(1, int(page))
        limit = self.page_size
        offset = (page - 1) * limit
        symbols = list(symbols or [])

        rows = repo.fetch_report_page(db, year, month, symbols, limit=limit, offset=offset)
        total_records = repo.count_report_rows(db, year, month, symbols)
        totals = repo.sum_report_totals(db, year, month, symbols)

        return DailyReportPage(
            data=[row_to_dict(r) for r in rows],
            totals={k: float(v) for k, v in totals.items()},
            pagination={
                "current_page": page,
                "total_pages": math.ceil(total_records / limit) if total_records else 0,
                "total_records": total_records,
                "records_per_page": limit,
            },
            filters={"year": year, "month": month, "symbol": ",".join(symbols)},
        )

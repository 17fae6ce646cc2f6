# tradebook/routers/pl_report.py
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from tradebook.db.session import get_db
from tradebook.pnl.rebuild import DatabaseUnavailableError, PnlRebuilder, month_bounds
from tradebook.pnl.service import PlReportService, parse_symbols

router = APIRouter(prefix="/api/pl-report", tags=["pl-report"])
log = logging.getLogger(__name__)


def _service(request: Request) -> PlReportService:
    return request.app.state.report_service


def _rebuilder(request: Request) -> PnlRebuilder:
    return request.app.state.rebuilder


# ─────────────────────────────── Schemas ───────────────────────────────

class YearsResponse(BaseModel):
    years: list[int]


class SymbolsResponse(BaseModel):
    symbols: list[str]


class DailyReportResponse(BaseModel):
    success: bool = True
    data: list[dict]
    totals: dict[str, float]
    pagination: dict[str, int]
    filters: dict


class RebuildRequest(BaseModel):
    """Either an explicit inclusive date range or a calendar month."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    year: Optional[int] = Field(default=None, ge=2000, le=2100)
    month: Optional[int] = Field(default=None, ge=1, le=12)

    @model_validator(mode="after")
    def _one_form(self) -> "RebuildRequest":
        has_range = self.start_date is not None or self.end_date is not None
        has_month = self.year is not None or self.month is not None
        if has_range == has_month:
            raise ValueError("provide either start_date/end_date or year/month")
        if has_range and (self.start_date is None or self.end_date is None):
            raise ValueError("start_date and end_date are both required")
        if has_month and (self.year is None or self.month is None):
            raise ValueError("year and month are both required")
        if has_range and self.end_date < self.start_date:  # type: ignore[operator]
            raise ValueError("end_date is before start_date")
        return self

    def bounds(self) -> tuple[date, date]:
        if self.start_date is not None and self.end_date is not None:
            return self.start_date, self.end_date
        return month_bounds(int(self.year), int(self.month))  # type: ignore[arg-type]


class RebuildErrorOut(BaseModel):
    date: str
    message: str
    symbol: Optional[str] = None


class RebuildResponse(BaseModel):
    start_date: date
    end_date: date
    processed: int
    skipped: int
    rows_written: int
    errors: list[RebuildErrorOut]


# ─────────────────────────────── Routes ────────────────────────────────

@router.get("/years", response_model=YearsResponse)
def get_years(db: Session = Depends(get_db), svc: PlReportService = Depends(_service)):
    return YearsResponse(years=svc.get_years(db))


@router.get("/symbols", response_model=SymbolsResponse)
def get_symbols(db: Session = Depends(get_db), svc: PlReportService = Depends(_service)):
    return SymbolsResponse(symbols=svc.get_symbols(db))


@router.get("/daily", response_model=DailyReportResponse)
def get_daily_report(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="defaults to current UTC year"),
    month: Optional[int] = Query(None, ge=1, le=12, description="defaults to current UTC month"),
    symbol_ref: Optional[str] = Query(None, description="comma separated symbol refs"),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    svc: PlReportService = Depends(_service),
):
    now = datetime.now(timezone.utc)
    result = svc.get_daily(
        db,
        year=year or now.year,
        month=month or now.month,
        symbols=parse_symbols(symbol_ref),
        page=page,
    )
    return DailyReportResponse(**asdict(result))


@router.post("/rebuild", response_model=RebuildResponse)
def rebuild(body: RebuildRequest, rebuilder: PnlRebuilder = Depends(_rebuilder)):
    """
    Recompute pl_report_daily for the requested days. Runs synchronously in
    the worker thread; per-day failures come back in `errors`.
    """
    start_day, end_day = body.bounds()
    try:
        summary = rebuilder.rebuild_range(start_day, end_day)
    except DatabaseUnavailableError as e:
        log.error(f"rebuild {start_day} → {end_day} aborted: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return RebuildResponse(start_date=start_day, end_date=end_day, **summary.to_dict())

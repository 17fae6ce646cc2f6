# tradebook/models/pl_report_daily.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def _raw():
    return mapped_column(Numeric(20, 8), nullable=False, default=Decimal("0"))


def _money():
    return mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0"))


class PlReportDaily(Base):
    """
    Finalized per-symbol, per-day P&L report row.

    Uniqueness:
      (trade_date, symbol_ref) is unique. The rebuild job deletes the key
      before inserting, so reruns leave exactly one row.

    Raw size/price inputs keep feed precision; every computed money column
    is stored rounded to the cent.
    """

    __tablename__ = "pl_report_daily"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    trade_date: Mapped[date] = mapped_column(Date, nullable=False)
    symbol_ref: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    # raw inputs
    mktprice: Mapped[Decimal] = _raw()
    buysize1: Mapped[Decimal] = _raw()
    sellsize1: Mapped[Decimal] = _raw()
    buysize2: Mapped[Decimal] = _raw()
    sellsize2: Mapped[Decimal] = _raw()
    buyprice1: Mapped[Decimal] = _raw()
    sellprice1: Mapped[Decimal] = _raw()
    buyprice2: Mapped[Decimal] = _raw()
    sellprice2: Mapped[Decimal] = _raw()

    # company (level 1)
    company_balance: Mapped[Decimal] = _money()
    company_equity: Mapped[Decimal] = _money()
    company_floating: Mapped[Decimal] = _money()
    company_pln: Mapped[Decimal] = _money()
    company_realized: Mapped[Decimal] = _money()
    company_unrealized: Mapped[Decimal] = _money()

    # exp (level 2)
    exp_balance: Mapped[Decimal] = _money()
    exp_equity: Mapped[Decimal] = _money()
    exp_floating: Mapped[Decimal] = _money()
    # summed latest profit_loss of the mapped accounts, not a day-over-day delta
    exp_pln: Mapped[Decimal] = _money()
    exp_realized: Mapped[Decimal] = _money()
    exp_unrealized: Mapped[Decimal] = _money()

    accn_pf: Mapped[Decimal] = _money()
    daily_company_total: Mapped[Decimal] = _money()
    daily_exp_total: Mapped[Decimal] = _money()
    daily_grand_total: Mapped[Decimal] = _money()

    is_finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    __table_args__ = (
        UniqueConstraint("trade_date", "symbol_ref", name="pl_report_daily_unique_idx"),
        Index("pl_report_daily_year_month_idx", "year", "month"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<PlReportDaily {self.trade_date} {self.symbol_ref} "
            f"grand={self.daily_grand_total} accn_pf={self.accn_pf}>"
        )

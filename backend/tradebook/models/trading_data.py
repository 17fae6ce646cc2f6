# tradebook/models/trading_data.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TradingData(Base):
    """
    Raw per-symbol execution/quote snapshot written by the ingestion feed.

    Level 1 columns (buy/sell size & price 1) are the company book,
    level 2 columns are the exp (external) book. balance/equity/floating
    are the company's running account figures at the time of the row.

    Read-only for this service. Every numeric column is nullable because the
    feed sends partial rows; readers coerce NULL to zero.
    """

    __tablename__ = "trading_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    symbol_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    mktprice: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)

    buysize1: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    sellsize1: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    buyprice1: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    sellprice1: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)

    buysize2: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    sellsize2: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    buyprice2: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    sellprice2: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)

    # the feed table spells this column "Balance"
    balance: Mapped[Optional[Decimal]] = mapped_column("Balance", Numeric(20, 8), nullable=True)
    equity: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    floating: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)

    __table_args__ = (
        Index("trading_data_date_symbol_idx", "date", "symbol_ref"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<TradingData {self.date} {self.symbol_ref} mkt={self.mktprice}>"

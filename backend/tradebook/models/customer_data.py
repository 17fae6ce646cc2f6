# tradebook/models/customer_data.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class CustomerData(Base):
    """
    Point-in-time snapshot of one customer sub-account (keyed by its MT5 login).

    Many snapshots per account; consumers take the latest one as of a date.
    """

    __tablename__ = "customer_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mt5: Mapped[str] = mapped_column(String(64), nullable=False)

    balance: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    equity: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    floating: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    profit_loss: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
    )

    __table_args__ = (
        Index("customer_data_mt5_created_idx", "mt5", "created_at"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<CustomerData {self.mt5} @ {self.created_at} bal={self.balance}>"

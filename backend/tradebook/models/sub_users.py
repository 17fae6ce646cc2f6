# tradebook/models/sub_users.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class SubUser(Base):
    """Maps a customer sub-account (sub_username == customer_data.mt5) to a symbol."""

    __tablename__ = "sub_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sub_username: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    symbol_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")

    def __repr__(self) -> str:  # pragma: no cover
        return f"<SubUser {self.sub_username} -> {self.symbol_ref}>"

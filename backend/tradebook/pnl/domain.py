# tradebook/pnl/domain.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

ZERO = Decimal("0")


# ─────────────────────────────── Inputs ─────────────────────────────────────

@dataclass
class TradeRow:
    """One symbol's raw trading_data row for a day (already coerced to Decimal)."""
    trade_date: date
    symbol_ref: str
    mktprice: Decimal = ZERO
    buysize1: Decimal = ZERO
    sellsize1: Decimal = ZERO
    buyprice1: Decimal = ZERO
    sellprice1: Decimal = ZERO
    buysize2: Decimal = ZERO
    sellsize2: Decimal = ZERO
    buyprice2: Decimal = ZERO
    sellprice2: Decimal = ZERO
    company_balance: Decimal = ZERO
    company_equity: Decimal = ZERO
    company_floating: Decimal = ZERO


@dataclass
class AccountAggregate:
    """Sum of the latest customer_data snapshot of every sub-account mapped to a symbol."""
    balance: Decimal = ZERO
    equity: Decimal = ZERO
    floating: Decimal = ZERO
    profit_loss: Decimal = ZERO


@dataclass
class CompanyBalance:
    balance: Decimal = ZERO
    equity: Decimal = ZERO


@dataclass
class PriorDayBalances:
    """Closing figures of the previous calendar day, keyed by symbol_ref."""
    company: Dict[str, CompanyBalance] = field(default_factory=dict)
    exp: Dict[str, Decimal] = field(default_factory=dict)


# ─────────────────────────────── Output ─────────────────────────────────────

@dataclass
class DailyReportRow:
    trade_date: date
    symbol_ref: str

    mktprice: Decimal
    buysize1: Decimal
    sellsize1: Decimal
    buysize2: Decimal
    sellsize2: Decimal
    buyprice1: Decimal
    sellprice1: Decimal
    buyprice2: Decimal
    sellprice2: Decimal

    company_balance: Decimal
    company_equity: Decimal
    company_floating: Decimal
    company_pln: Decimal
    company_realized: Decimal
    company_unrealized: Decimal

    exp_balance: Decimal
    exp_equity: Decimal
    exp_floating: Decimal
    exp_pln: Decimal
    exp_realized: Decimal
    exp_unrealized: Decimal

    accn_pf: Decimal
    daily_company_total: Decimal
    daily_exp_total: Decimal
    daily_grand_total: Decimal

    is_finalized: bool = True

    @property
    def year(self) -> int:
        return self.trade_date.year

    @property
    def month(self) -> int:
        return self.trade_date.month

    def to_columns(self) -> Dict[str, Any]:
        """Column mapping for PlReportDaily(**...)."""
        data = asdict(self)
        data["year"] = self.year
        data["month"] = self.month
        return data


# ─────────────────────────────── Run summary ────────────────────────────────

@dataclass
class RebuildError:
    date: date
    message: str
    symbol: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"date": self.date.isoformat(), "message": self.message}
        if self.symbol is not None:
            out["symbol"] = self.symbol
        return out


@dataclass
class RebuildSummary:
    processed: int = 0
    skipped: int = 0
    rows_written: int = 0
    errors: List[RebuildError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def merge(self, other: "RebuildSummary") -> None:
        self.processed += other.processed
        self.skipped += other.skipped
        self.rows_written += other.rows_written
        self.errors.extend(other.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "rows_written": self.rows_written,
            "errors": [e.to_dict() for e in self.errors],
        }

# tradebook/pnl/calculator.py
"""
Per-symbol daily P&L arithmetic.

Pure functions over Decimal; no database access. Inputs are coerced with
`to_decimal`, so NULLs, blanks and garbage from the feed become zero and
NaN never reaches a stored value.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional, Tuple

from tradebook.config.constants import EXP_SIGN, MONEY_LIMIT, MONEY_PREC, MONEY_QUANT
from .domain import ZERO, AccountAggregate, CompanyBalance, DailyReportRow, PriorDayBalances, TradeRow


def to_decimal(value: Any) -> Decimal:
    """Safe numeric coercion: anything non-numeric or non-finite becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        if isinstance(value, float):
            # str() keeps the shortest repr (12.345 stays 12.345, not 12.3449999...)
            d = Decimal(str(value))
        elif isinstance(value, int):
            d = Decimal(value)
        else:
            s = str(value).strip()
            if not s:
                return ZERO
            d = Decimal(s)
    except (InvalidOperation, ValueError):
        return ZERO
    return d if d.is_finite() else ZERO


def round_money(value: Any) -> Decimal:
    """
    Round to the cent, half away from zero: 12.345 -> 12.35, -0.005 -> -0.01.

    Raises ValueError when the result does not fit a Numeric(20, 2) column.
    """
    with localcontext() as ctx:
        ctx.prec = MONEY_PREC
        d = to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    if abs(d) >= MONEY_LIMIT:
        raise ValueError(f"value out of range for a money column: {d:.2E}")
    # normalise negative zero so -0.00 never gets stored
    return d if d != 0 else abs(d)


def level_pnl(
    buy_price: Decimal,
    sell_price: Decimal,
    buy_size: Decimal,
    sell_size: Decimal,
    market_price: Decimal,
) -> Tuple[Decimal, Decimal]:
    """
    Realized / unrealized P&L of one book level.

    realized   = (avg sell - avg buy) * min(buy size, sell size), only when both
                 average prices are positive
    unrealized = open size valued against the market:
                 long  (buy > sell): (buy - sell) * (market - avg buy)
                 short (sell > buy): (sell - buy) * (avg sell - market)
    """
    realized = ZERO
    if buy_price > 0 and sell_price > 0 and buy_size > 0 and sell_size > 0:
        realized = (sell_price - buy_price) * min(buy_size, sell_size)

    # no price guard here; see the unrealized note in config.constants
    unrealized = ZERO
    if buy_size > sell_size:
        unrealized = (buy_size - sell_size) * (market_price - buy_price)
    elif sell_size > buy_size:
        unrealized = (sell_size - buy_size) * (sell_price - market_price)

    return realized, unrealized


def build_report_row(
    trade: TradeRow,
    exp: Optional[AccountAggregate],
    prior: PriorDayBalances,
) -> DailyReportRow:
    """
    Turn one symbol's TradeRow plus its account aggregate and the previous
    day's closing figures into a finalized report row.

    Missing account data means zero exp figures; a missing previous day
    means the deltas are measured from zero.
    """
    exp = exp or AccountAggregate()
    sym = trade.symbol_ref

    company_realized, company_unrealized = level_pnl(
        trade.buyprice1, trade.sellprice1, trade.buysize1, trade.sellsize1, trade.mktprice
    )
    exp_realized_raw, exp_unrealized_raw = level_pnl(
        trade.buyprice2, trade.sellprice2, trade.buysize2, trade.sellsize2, trade.mktprice
    )
    exp_realized = exp_realized_raw * EXP_SIGN
    exp_unrealized = exp_unrealized_raw * EXP_SIGN

    y_company = prior.company.get(sym) or CompanyBalance()
    y_exp_balance = prior.exp.get(sym, ZERO)

    accn_pf = (trade.company_balance - y_company.balance) - (exp.balance - y_exp_balance)
    company_pln = trade.company_equity - y_company.equity

    company_total = company_realized + company_unrealized
    exp_total = exp_realized + exp_unrealized

    return DailyReportRow(
        trade_date=trade.trade_date,
        symbol_ref=sym,
        mktprice=trade.mktprice,
        buysize1=trade.buysize1,
        sellsize1=trade.sellsize1,
        buysize2=trade.buysize2,
        sellsize2=trade.sellsize2,
        buyprice1=trade.buyprice1,
        sellprice1=trade.sellprice1,
        buyprice2=trade.buyprice2,
        sellprice2=trade.sellprice2,
        company_balance=round_money(trade.company_balance),
        company_equity=round_money(trade.company_equity),
        company_floating=round_money(trade.company_floating),
        company_pln=round_money(company_pln),
        company_realized=round_money(company_realized),
        company_unrealized=round_money(company_unrealized),
        exp_balance=round_money(exp.balance),
        exp_equity=round_money(exp.equity),
        exp_floating=round_money(exp.floating),
        exp_pln=round_money(exp.profit_loss),
        exp_realized=round_money(exp_realized),
        exp_unrealized=round_money(exp_unrealized),
        accn_pf=round_money(accn_pf),
        daily_company_total=round_money(company_total),
        daily_exp_total=round_money(exp_total),
        # computed from unrounded parts, then rounded once
        daily_grand_total=round_money(company_total - exp_total),
        is_finalized=True,
    )

# tradebook/config/constants.py
"""
Fixed constants of the daily P&L formula.

Import-time constants only. Tunables belong in settings.
"""
from decimal import Decimal

# Money is stored to the cent, rounded half away from zero.
MONEY_QUANT = Decimal("0.01")

# The exp (level 2) book is treated as the mirrored counterparty of the
# company book: its realized/unrealized figures are stored negated.
# Unconfirmed against ledger semantics; do not change without the data owners.
EXP_SIGN = Decimal("-1")

# Unrealized P&L is valued for any open size, even when the day has only buys
# or only sells (avg sell or avg buy is 0). The legacy job valued it only when
# both averages were positive, so a long-only day stored 0 there.
# Unconfirmed which one the ledger expects; settle with the data owners.

# Numeric(20, 2): money values must stay below 10**18 in magnitude.
MONEY_LIMIT = Decimal("1e18")

# Working precision for money arithmetic (the default context keeps 28 digits).
MONEY_PREC = 60

# Totals block of the monthly report, in the order the UI renders it.
REPORT_TOTAL_FIELDS = (
    "company_realized",
    "company_unrealized",
    "company_balance",
    "company_equity",
    "company_floating",
    "exp_realized",
    "exp_unrealized",
    "exp_balance",
    "exp_equity",
    "exp_floating",
    "exp_pln",
    "accn_pf",
)

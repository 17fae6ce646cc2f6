# tradebook/models/__init__.py
"""
SQLAlchemy models registry.

Importing this package registers every table on Base.metadata.
"""

from tradebook.models.base import Base, init_db
from tradebook.models.customer_data import CustomerData
from tradebook.models.pl_report_daily import PlReportDaily
from tradebook.models.sub_users import SubUser
from tradebook.models.trading_data import TradingData

__all__ = ["Base", "init_db", "CustomerData", "PlReportDaily", "SubUser", "TradingData"]

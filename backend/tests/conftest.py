# backend/tests/conftest.py
import sys, pathlib
from datetime import date, datetime
from decimal import Decimal

import pytest

# Put the project root (backend) on sys.path so "tradebook" is importable without installing
ROOT = pathlib.Path(__file__).resolve().parents[1]  # .../backend
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tradebook.config.settings import Settings  # noqa: E402
from tradebook.db.engine import make_engine  # noqa: E402
from tradebook.db.session import make_session_factory  # noqa: E402
from tradebook.models import CustomerData, SubUser, TradingData, init_db  # noqa: E402


@pytest.fixture()
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def settings():
    return Settings(
        database_url="sqlite://",
        auto_create_tables=True,
        enable_nightly_rebuild=False,
        db_connect_attempts=2,
        db_connect_base_delay_sec=0.0,
        db_connect_max_delay_sec=0.0,
        report_page_size=31,
    )


@pytest.fixture()
def app(settings, engine):
    from tradebook.main import create_app
    return create_app(settings=settings, engine=engine)


# ─────────────────────────── seed helpers ───────────────────────────

def _dec(v):
    return None if v is None else Decimal(str(v))


class Seeder:
    def __init__(self, db):
        self.db = db

    def trade(self, when, symbol, **fields):
        """One trading_data row. A bare date is stored at 12:00."""
        if isinstance(when, date) and not isinstance(when, datetime):
            when = datetime(when.year, when.month, when.day, 12, 0, 0)
        row = TradingData(date=when, symbol_ref=symbol, **{k: _dec(v) for k, v in fields.items()})
        self.db.add(row)
        self.db.commit()
        return row

    def sub_user(self, sub_username, symbol_ref, status="active"):
        row = SubUser(sub_username=sub_username, symbol_ref=symbol_ref, status=status)
        self.db.add(row)
        self.db.commit()
        return row

    def snapshot(self, mt5, created_at, **fields):
        row = CustomerData(mt5=mt5, created_at=created_at, **{k: _dec(v) for k, v in fields.items()})
        self.db.add(row)
        self.db.commit()
        return row


@pytest.fixture()
def seed(db):
    return Seeder(db)

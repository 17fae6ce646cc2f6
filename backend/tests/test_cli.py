# tests/test_cli.py
import argparse
import json
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

import tradebook.pnl.rebuild as rebuild_mod
from tradebook import cli
from tradebook.config.settings import get_settings
from tradebook.db.engine import make_engine
from tradebook.db.session import make_session_factory
from tradebook.models import PlReportDaily, TradingData
from tradebook.pnl.rebuild import DatabaseUnavailableError, PnlRebuilder


@pytest.fixture()
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("DB_CONNECT_BASE_DELAY_SEC", "0")
    monkeypatch.setenv("DB_CONNECT_MAX_DELAY_SEC", "0")
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


@pytest.fixture()
def file_db(db_url):
    """init-db, then one trading_data row on 2025-08-05."""
    assert cli.main(["init-db"]) == cli.EXIT_OK
    engine = make_engine(db_url)
    with make_session_factory(engine)() as s:
        s.add(TradingData(date=datetime(2025, 8, 5, 12, 0), symbol_ref="EURUSD", mktprice=Decimal("105"),
                          buyprice1=Decimal("100"), sellprice1=Decimal("110"),
                          buysize1=Decimal("10"), sellsize1=Decimal("4")))
        s.commit()
    yield engine
    engine.dispose()


def _ns(month=None, start=None, end=None):
    return argparse.Namespace(month=month, start=start, end=end)


def test_resolve_range():
    today = date(2025, 2, 14)
    assert cli.resolve_range(_ns(), today) == (date(2025, 2, 1), date(2025, 2, 28))
    assert cli.resolve_range(_ns(month=(2024, 2)), today) == (date(2024, 2, 1), date(2024, 2, 29))
    assert cli.resolve_range(_ns(start=date(2025, 8, 1), end=date(2025, 8, 3)), today) == (
        date(2025, 8, 1), date(2025, 8, 3),
    )
    with pytest.raises(SystemExit):
        cli.resolve_range(_ns(start=date(2025, 8, 1)), today)
    with pytest.raises(SystemExit):
        cli.resolve_range(_ns(start=date(2025, 8, 3), end=date(2025, 8, 1)), today)


def test_parser_rejects_bad_month():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["rebuild", "--month", "2025-13"])
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["rebuild", "--month", "2025-08", "--start", "2025-08-01"])


def test_rebuild_range_exit_ok(file_db, capsys):
    rc = cli.main(["rebuild", "--start", "2025-08-04", "--end", "2025-08-05"])
    assert rc == cli.EXIT_OK

    out = json.loads(capsys.readouterr().out)
    assert out["start_date"] == "2025-08-04"
    assert (out["processed"], out["skipped"], out["rows_written"]) == (1, 1, 1)

    with make_session_factory(file_db)() as s:
        assert s.execute(select(func.count(PlReportDaily.id))).scalar_one() == 1
        row = s.execute(select(PlReportDaily)).scalar_one()
        assert row.company_realized == Decimal("40.00")


def test_rebuild_month_with_row_errors_exit_partial(file_db, monkeypatch, capsys):
    def broken(trade, exp, prior):
        raise ValueError("bad row")

    monkeypatch.setattr(rebuild_mod, "build_report_row", broken)
    rc = cli.main(["rebuild", "--month", "2025-08"])
    assert rc == cli.EXIT_PARTIAL
    out = json.loads(capsys.readouterr().out)
    assert out["errors"] == [{"date": "2025-08-05", "symbol": "EURUSD", "message": "bad row"}]


def test_rebuild_db_unavailable_exit_fatal(file_db, monkeypatch):
    def down(self, start_day, end_day):
        raise DatabaseUnavailableError("no connection")

    monkeypatch.setattr(PnlRebuilder, "rebuild_range", down)
    assert cli.main(["rebuild", "--month", "2025-08"]) == cli.EXIT_FATAL


def test_serve_runs_app_factory(db_url, monkeypatch):
    seen = {}
    monkeypatch.setattr(cli.uvicorn, "run", lambda target, **kw: seen.update(target=target, **kw))
    assert cli.main(["serve", "--port", "8123"]) == cli.EXIT_OK
    assert seen == {"target": "tradebook.main:create_app", "factory": True, "host": "127.0.0.1", "port": 8123}

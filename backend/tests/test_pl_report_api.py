# tests/test_pl_report_api.py
from datetime import date, datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from tradebook.main import create_app
from tradebook.pnl.rebuild import PnlRebuilder
from tradebook.utils.retry import RetryPolicy

D4, D5 = date(2025, 8, 4), date(2025, 8, 5)


def _client(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture()
def seeded(seed):
    seed.trade(D4, "EURUSD", mktprice=100, balance=900, equity=1000)
    seed.trade(D4, "GBPUSD", mktprice=50, balance=500, equity=500)
    seed.trade(D5, "EURUSD", mktprice=105, buyprice1=100, sellprice1=110, buysize1=10, sellsize1=4,
               balance=1000, equity=1250)
    seed.trade(D5, "GBPUSD", mktprice=52, buyprice2=50, sellprice2=51, buysize2=2, sellsize2=2,
               balance=500, equity=480)
    seed.sub_user("7001", "EURUSD")
    seed.snapshot("7001", datetime(2025, 8, 4, 18, 0), balance=150, equity=150)
    seed.snapshot("7001", datetime(2025, 8, 5, 18, 0), balance=200, equity=190, profit_loss=7.5)
    return seed


@pytest.mark.asyncio
async def test_ping(app):
    async with _client(app) as ac:
        r = await ac.get("/api/ping")
        assert r.status_code == 200
        assert r.json() == {"ok": True}


@pytest.mark.asyncio
async def test_rebuild_month_then_read_daily(app, seeded):
    async with _client(app) as ac:
        r = await ac.post("/api/pl-report/rebuild", json={"year": 2025, "month": 8})
        assert r.status_code == 200
        body = r.json()
        assert body["start_date"] == "2025-08-01"
        assert body["end_date"] == "2025-08-31"
        assert (body["processed"], body["skipped"], body["rows_written"]) == (2, 29, 4)
        assert body["errors"] == []

        r = await ac.get("/api/pl-report/daily", params={"year": 2025, "month": 8})
        assert r.status_code == 200
        j = r.json()
        assert j["success"] is True
        assert [(x["trade_date"], x["symbol_ref"]) for x in j["data"]] == [
            ("2025-08-05", "EURUSD"),
            ("2025-08-05", "GBPUSD"),
            ("2025-08-04", "EURUSD"),
            ("2025-08-04", "GBPUSD"),
        ]
        assert j["data"][0]["company_realized"] == 40.0
        assert j["data"][1]["exp_realized"] == -2.0

        totals = j["totals"]
        assert len(totals) == 12
        assert totals["company_realized_total"] == 40.0
        assert totals["exp_realized_total"] == -2.0
        assert totals["company_balance_total"] == 2900.0
        assert totals["exp_pln_total"] == 7.5
        assert totals["accn_pf_total"] == 1300.0   # 750 + 500 + 50 + 0

        assert j["pagination"] == {
            "current_page": 1, "total_pages": 1, "total_records": 4, "records_per_page": 31,
        }
        assert j["filters"] == {"year": 2025, "month": 8, "symbol": ""}


@pytest.mark.asyncio
async def test_range_rebuild_and_symbol_filter(app, seeded):
    async with _client(app) as ac:
        r = await ac.post("/api/pl-report/rebuild", json={"start_date": "2025-08-05", "end_date": "2025-08-05"})
        assert r.status_code == 200
        assert r.json()["rows_written"] == 2

        r = await ac.get("/api/pl-report/daily", params={"year": 2025, "month": 8, "symbol_ref": " GBPUSD ,"})
        j = r.json()
        assert [x["symbol_ref"] for x in j["data"]] == ["GBPUSD"]
        assert j["totals"]["company_realized_total"] == 0.0
        assert j["totals"]["exp_realized_total"] == -2.0
        assert j["filters"]["symbol"] == "GBPUSD"


@pytest.mark.asyncio
async def test_pagination_keeps_month_totals(settings, engine, seeded):
    small = create_app(settings=settings.model_copy(update={"report_page_size": 3}), engine=engine)
    async with _client(small) as ac:
        await ac.post("/api/pl-report/rebuild", json={"year": 2025, "month": 8})

        p1 = (await ac.get("/api/pl-report/daily", params={"year": 2025, "month": 8})).json()
        p2 = (await ac.get("/api/pl-report/daily", params={"year": 2025, "month": 8, "page": 2})).json()

    assert len(p1["data"]) == 3
    assert [(x["trade_date"], x["symbol_ref"]) for x in p2["data"]] == [("2025-08-04", "GBPUSD")]
    assert p2["pagination"]["total_pages"] == 2
    assert p2["pagination"]["current_page"] == 2
    assert p1["totals"] == p2["totals"]


@pytest.mark.asyncio
async def test_empty_month_has_zero_totals(app):
    async with _client(app) as ac:
        j = (await ac.get("/api/pl-report/daily", params={"year": 2024, "month": 2})).json()
    assert j["data"] == []
    assert set(j["totals"].values()) == {0.0}
    assert j["pagination"]["total_pages"] == 0


@pytest.mark.asyncio
async def test_daily_defaults_to_current_month(app):
    now = datetime.now(timezone.utc)
    async with _client(app) as ac:
        j = (await ac.get("/api/pl-report/daily")).json()
    assert (j["filters"]["year"], j["filters"]["month"]) == (now.year, now.month)


@pytest.mark.asyncio
async def test_years_and_symbols(app, seeded):
    async with _client(app) as ac:
        await ac.post("/api/pl-report/rebuild", json={"year": 2025, "month": 8})
        years = (await ac.get("/api/pl-report/years")).json()["years"]
        symbols = (await ac.get("/api/pl-report/symbols")).json()["symbols"]

    current = datetime.now(timezone.utc).year
    assert years[0] == current
    assert 2025 in years
    assert symbols == ["EURUSD", "GBPUSD"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"start_date": "2025-08-05"},
        {"year": 2025},
        {"year": 2025, "month": 8, "start_date": "2025-08-01", "end_date": "2025-08-02"},
        {"start_date": "2025-08-05", "end_date": "2025-08-01"},
        {"year": 2025, "month": 13},
        {"start_date": "not-a-date", "end_date": "2025-08-01"},
    ],
)
async def test_rebuild_rejects_bad_body(app, payload):
    async with _client(app) as ac:
        r = await ac.post("/api/pl-report/rebuild", json=payload)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_rebuild_returns_503_when_db_unreachable(app):
    def dead_factory():
        raise OperationalError("SELECT 1", {}, Exception("can't connect"))

    app.state.rebuilder = PnlRebuilder(
        dead_factory, RetryPolicy(attempts=2, base_delay=0, max_delay=0), sleep=lambda _: None
    )
    async with _client(app) as ac:
        r = await ac.post("/api/pl-report/rebuild", json={"start_date": "2025-08-01", "end_date": "2025-08-02"})
    assert r.status_code == 503
    assert "database connection" in r.json()["detail"]


@pytest.mark.asyncio
async def test_healthz_and_metrics(app, seeded):
    async with _client(app) as ac:
        await ac.post("/api/pl-report/rebuild", json={"start_date": "2025-08-05", "end_date": "2025-08-05"})

        r = await ac.get("/api/healthz")
        assert r.status_code == 200
        h = r.json()
        assert h["ok"] is True and h["db"] == "ok"
        assert h["last_rebuild_ts"] is not None

        r = await ac.get("/metrics")
        assert r.status_code == 200
        assert "pnl_rebuild_days_total" in r.text
        assert "pnl_rebuild_rows_written_total" in r.text

# tradebook/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from tradebook.config.settings import Settings, get_settings
from tradebook.db.engine import engine_from_settings
from tradebook.db.session import make_session_factory
from tradebook.models import init_db
from tradebook.pnl.rebuild import PnlRebuilder
from tradebook.pnl.service import PlReportService
from tradebook.routers import health, pl_report
from tradebook.services.logger import setup_logging
from tradebook.services.scheduler import TaskScheduler

APP_VERSION = "0.1.0"
logger = logging.getLogger("tradebook.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    engine: Engine = app.state.engine

    if settings.auto_create_tables:
        init_db(engine)
        tables = sorted(inspect(engine).get_table_names())
        logger.info(f"📦 DB schema ensured (create_all). Tables: {tables}")
        if "pl_report_daily" not in tables:
            logger.warning("⚠️  pl_report_daily missing; check model imports.")

    for issue in settings.explain_sanity():
        logger.warning(f"⚠️  {issue}")

    scheduler: Optional[TaskScheduler] = None
    if settings.enable_nightly_rebuild:
        scheduler = TaskScheduler(
            app.state.rebuilder,
            hour_utc=settings.nightly_rebuild_hour_utc,
            lookback_days=settings.nightly_rebuild_lookback_days,
        )
        await scheduler.start()
    app.state.scheduler = scheduler

    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()
        engine.dispose()


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the API. Engine, session factory, rebuilder and report service are
    created here and hung on app.state; nothing is module-level.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    engine = engine or engine_from_settings(settings)
    session_factory = make_session_factory(engine)

    app = FastAPI(title="iTradeBook P&L report", version=APP_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.rebuilder = PnlRebuilder.from_settings(session_factory, settings)
    app.state.report_service = PlReportService(page_size=settings.report_page_size)
    app.state.scheduler = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(pl_report.router)

    @app.get("/metrics")
    async def metrics() -> PlainTextResponse:
        return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app

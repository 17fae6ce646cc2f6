# tradebook/db/engine.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from tradebook.config.settings import Settings

log = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_sqlite_memory(url: str) -> bool:
    if not _is_sqlite(url):
        return False
    tail = url.split("://", 1)[-1]
    return not tail or tail == "/" or ":memory:" in tail


def _sqlite_path(url: str) -> Optional[Path]:
    """
    Extract filesystem path from a sqlite URL (sqlite:///relative.db or sqlite:////abs.db).
    Returns None for memory URLs (sqlite:// or sqlite:///:memory:).
    """
    if not _is_sqlite(url) or _is_sqlite_memory(url):
        return None
    tail = url.split("://", 1)[-1]
    p = Path(tail.lstrip("/"))
    # four slashes means absolute
    if tail.startswith("//"):
        p = Path("/" + str(p))
    return p


def make_engine(database_url: str, *, echo: bool = False) -> Engine:
    """
    Build an Engine for the given URL.

    - file SQLite: parent dir created, WAL + foreign keys enabled
    - in-memory SQLite: a single shared connection (StaticPool) so every
      session sees the same database
    - anything else (MariaDB/MySQL/Postgres): pre-ping + recycle for long-lived pools
    """
    url = database_url.strip()

    if _is_sqlite(url):
        sqlite_file = _sqlite_path(url)
        if sqlite_file is not None:
            sqlite_file.parent.mkdir(parents=True, exist_ok=True)

        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if _is_sqlite_memory(url):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, future=True, **kwargs)

        @event.listens_for(engine, "connect")
        def _sqlite_on_connect(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            if sqlite_file is not None:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.execute("PRAGMA busy_timeout=5000;")
            cur.close()

        return engine

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,  # validate pooled connections before using
        pool_recycle=300,
        future=True,
    )


def engine_from_settings(settings: Settings) -> Engine:
    engine = make_engine(settings.database_url, echo=settings.sql_echo)
    url_repr = engine.url.render_as_string(hide_password=True)
    log.info("Using database: %s", url_repr)
    return engine

# tradebook/db/session.py
from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    """
    Session factory bound to an explicitly passed engine.

    - autoflush=False gives explicit control over when to flush
    - expire_on_commit=False keeps rows usable after commit (API layers, summaries)
    """
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        class_=Session,
    )


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a Session from the factory stored on
    `app.state.session_factory` by `create_app()`.

    Rolls back if an exception escapes the endpoint; always closes.
    """
    factory: sessionmaker[Session] = request.app.state.session_factory
    db: Session = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


__all__ = ["make_session_factory", "get_db"]

# tradebook/models/base.py
from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase

# ───────────────── Naming convention (Alembic-friendly) ─────────────────
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Base(DeclarativeBase):
    """Base for all ORM models."""
    metadata = metadata


def init_db(engine: Engine) -> None:
    """
    Create tables if they do not exist yet.
    In production the schema is owned by migrations.
    """
    # models must be imported so they register on Base.metadata
    from tradebook.models import customer_data, pl_report_daily, sub_users, trading_data  # noqa: F401
    Base.metadata.create_all(bind=engine)

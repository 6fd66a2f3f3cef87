from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings


def make_engine(db_url: str) -> Engine:
    """Build an engine for ``db_url``.

    SQLite connections are shared across threads (FastAPI runs sync routes in a
    threadpool). An in-memory SQLite URL gets a single static connection so the
    schema survives between sessions.
    """
    if not db_url.startswith("sqlite"):
        return create_engine(db_url, pool_pre_ping=True)

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(db_url, **kwargs)


engine = make_engine(settings.DB_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

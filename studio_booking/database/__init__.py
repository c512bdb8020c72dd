"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from studio_booking.core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_pre_ping": True,
    "future": True,
}


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Engine options per dialect. SQLite needs cross-thread access for the threadpool."""

    kwargs = dict(_DEFAULT_POOL_KWARGS)
    if _is_sqlite(db_url):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update({"pool_size": 5, "max_overflow": 5, "pool_recycle": 300})
    return kwargs


engine: Engine = create_engine(settings.database_url, **_build_engine_kwargs(settings.database_url))


@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables. Migrations are out of scope; this is enough for SQLite and tests."""
    from studio_booking import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
]

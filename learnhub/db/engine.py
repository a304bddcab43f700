"""SQLAlchemy engine and session factory.

When DATABASE_URL is configured, provides:
- an engine (PostgreSQL via psycopg in production)
- a session factory used by the Sql* repositories
- a FastAPI lifespan hook for startup/shutdown

When DATABASE_URL is None, engine and session_factory are None and the
app falls back to in-memory repositories.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import asynccontextmanager, contextmanager

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from learnhub.core.config import SETTINGS
from learnhub.core.errors import ServiceUnavailable

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def build_engine(url: str, **kwargs) -> Engine:
    return create_engine(url, echo=SETTINGS.is_dev and SETTINGS.log_level == "debug", **kwargs)


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, expire_on_commit=False)


if SETTINGS.database_url:
    engine: Engine | None = build_engine(
        SETTINGS.database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    session_factory: sessionmaker[Session] | None = build_session_factory(engine)
else:
    engine = None
    session_factory = None


def check_database() -> bool:
    """True if a trivial query round-trips.  Used by the health endpoint."""
    if engine is None:
        return False
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True


@asynccontextmanager
async def lifespan_db():
    """Startup/shutdown hook for the database engine."""
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string(hide_password=True))
    yield
    engine.dispose()
    logger.info("Database engine disposed")


@contextmanager
def transaction(factory: sessionmaker[Session]) -> Iterator[Session]:
    """One session, one transaction: commit on success, roll back on error.

    Driver and connection failures surface as ServiceUnavailable so callers
    never confuse "storage is down" with a business answer.
    """
    try:
        with factory.begin() as session:
            yield session
    except SQLAlchemyError as exc:
        logger.error("Storage failure: %s", type(exc).__name__, exc_info=True)
        raise ServiceUnavailable("storage unavailable", cause=type(exc).__name__) from exc

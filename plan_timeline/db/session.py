from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from plan_timeline.config.settings import settings
from plan_timeline.db.models import Base

# Created on first use so importing the package never opens a connection
_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def _get_engine() -> Engine:
    """Get or create the engine for DATABASE_URL."""
    global _engine
    if _engine is None:
        connect_args = {}
        if settings.database_url.lower().startswith("sqlite"):
            # Sessions may be opened from UI and worker threads
            connect_args = {"check_same_thread": False}

        _engine = create_engine(
            settings.database_url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,
        )
        logger.info("Database engine initialized", dialect=_engine.dialect.name)
    return _engine


def _get_session_local() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
    return _SessionLocal


def init_db() -> None:
    """Create the plan_entries table (and its indexes) if missing."""
    Base.metadata.create_all(bind=_get_engine())
    logger.info("Plan schema ready", tables=sorted(Base.metadata.tables))


@contextmanager
def session_scope(session_local: sessionmaker) -> Generator[Session, None, None]:
    """Open a session from a factory as one unit of work.

    Commits on clean exit, rolls back and re-raises on any exception, and
    always closes the session.
    """
    session = session_local()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error("Database session failed, rolling back", error=repr(e))
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Session bound to the configured engine; commits on clean exit."""
    with session_scope(_get_session_local()) as session:
        yield session

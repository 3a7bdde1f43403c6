"""Database connection and session management."""

from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from candidate_finance_etl.config import get_settings

SessionFactory = Callable[[], Session]


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


@lru_cache
def get_engine() -> Engine:
    """Create and return SQLAlchemy engine."""
    settings = get_settings()
    kwargs = {}
    if not settings.database_url.startswith("sqlite"):
        kwargs = {"pool_size": 10, "max_overflow": 20}
    engine = create_engine(
        settings.database_url,
        echo=settings.log_level == "DEBUG",
        pool_pre_ping=True,
        **kwargs,
    )
    return engine


@lru_cache
def get_session_factory() -> sessionmaker:
    """Get the session factory bound to the configured engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_session() -> Session:
    """Get a new database session."""
    return get_session_factory()()


@contextmanager
def session_scope(factory: SessionFactory) -> Generator[Session, None, None]:
    """Transactional scope: commit on success, roll back on error, always close."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions with automatic cleanup."""
    with session_scope(get_session) as session:
        yield session

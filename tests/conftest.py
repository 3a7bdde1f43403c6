"""Shared fixtures for pipeline tests.

Tests run against an in-memory SQLite database and fake FEC clients; no
test touches the network or sleeps for real.
"""

import os

# Settings are read lazily, but DATABASE_URL is required
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("FEC_API_KEY", "test-key")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from candidate_finance_etl.config import get_settings
from candidate_finance_etl.models import Base, Candidate


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(bind=engine, autoflush=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def candidate(session):
    """A House candidate with a resolved FEC id."""
    row = Candidate(
        id="cand-1",
        name="Jane Smith",
        state="IL",
        office="House",
        district="13",
        fec_candidate_id="H4IL13001",
    )
    session.add(row)
    session.commit()
    return row

"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMINS", "admin@example.com")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from decimal import Decimal

import pytest

from init import get_session, init_tables, seed_defaults
from models import Level
from referral_engine.core.level_resolver import buildLevelTable
from referral_engine.events.event_bus import eventBus
from referral_engine.utils.time_machine import timeMachine

from tests.factories import makeUser


@pytest.fixture
def levelTable():
    """Default level table as transient rows."""
    return buildLevelTable()


@pytest.fixture
def scenarioLevels():
    """Small table: tier 1 at 100, tier 2 at 500, tier 3 at 2000 with 8 referrals."""
    return [
        Level(level=0, name="Unranked", minAmount=Decimal("0"), referrals=0, enabled=True),
        Level(level=1, name="One", minAmount=Decimal("100"), referrals=0, enabled=True),
        Level(level=2, name="Two", minAmount=Decimal("500"), referrals=0, enabled=True),
        Level(level=3, name="Three", minAmount=Decimal("2000"), referrals=8, enabled=True),
    ]


@pytest.fixture
def session():
    """In-memory SQLite session with the default level table seeded."""
    Session, engine = get_session("sqlite://")
    init_tables(engine)
    db = Session()
    seed_defaults(db)
    yield db
    db.close()
    engine.dispose()


@pytest.fixture
def addUser(session):
    """Persist a user; keyword arguments as for makeUser."""

    def factory(email, **kwargs):
        user = makeUser(email, **kwargs)
        session.add(user)
        session.commit()
        return user

    return factory


@pytest.fixture(autouse=True)
def resetGlobals():
    """Live time and no event handlers before and after every test."""
    timeMachine.resetToRealTime()
    eventBus.clear()
    yield
    timeMachine.resetToRealTime()
    eventBus.clear()

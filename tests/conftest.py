"""
Test configuration and fixtures.

Every test gets its own in-memory SQLite database. HTTP boundaries (embedding
provider, mail provider) are replaced with fakes or httpx.MockTransport.
"""

import os

# Must be set before anything imports reunite.db.db
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date, datetime, timedelta, timezone
from itertools import count

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from reunite.config import Settings
from reunite.db.db import build_engine, init_db
from reunite.errors import DeliveryError
from reunite.models import FoundItem, LostItem
from reunite.utils.mailer import Mailer


class FakeMailer(Mailer):
    """Records every message; addresses in ``failing`` raise DeliveryError."""

    def __init__(self, failing=()):
        self.sent = []
        self.failing = set(failing)

    async def send(self, to_address, subject, html):
        if to_address in self.failing:
            raise DeliveryError("Mailbox unavailable", {"to": to_address})
        self.sent.append({"to": to_address, "subject": subject, "html": html})


@pytest.fixture
def db_engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(db_engine):
    with Session(db_engine) as session:
        yield session


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def make_lost(session):
    """Factory for stored lost items; creation order follows call order."""
    ticks = count()
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)

    def _make(title, description=None, location="", **kwargs):
        item = LostItem(
            title=title,
            description=description,
            location=location,
            date_lost=kwargs.pop("date_lost", date(2024, 5, 1)),
            created_at=base + timedelta(minutes=next(ticks)),
            **kwargs,
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return _make


@pytest.fixture
def make_found(session):
    ticks = count()
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)

    def _make(title, description=None, location="", **kwargs):
        item = FoundItem(
            title=title,
            description=description,
            location=location,
            date_found=kwargs.pop("date_found", date(2024, 5, 2)),
            created_at=base + timedelta(minutes=next(ticks)),
            **kwargs,
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return _make

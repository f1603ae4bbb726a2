"""Unit tests for match notification and the mark-found path."""

import asyncio
import time
import uuid
from datetime import date

import pytest
from sqlmodel import Session, select

from reunite.db.db import build_engine, init_db
from reunite.errors import DeliveryError, NotFoundError
from reunite.matching.notifier import Notifier
from reunite.models import FoundItem, ItemMatch, LostItem
from reunite.utils.email_templates import ITEM_FOUND_SUBJECT, MATCH_SUBJECT
from tests.conftest import FakeMailer


def add_match(session, lost, found, score, notified=False):
    match = ItemMatch(
        lost_item_id=lost.id,
        found_item_id=found.id,
        match_score=score,
        notified=notified,
    )
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


def reload(session, match):
    session.expire_all()
    return session.exec(select(ItemMatch).where(ItemMatch.id == match.id)).one()


class SlowMailer(FakeMailer):
    """Holds each send open long enough for another run to interleave."""

    def __init__(self, delay=0.2, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay

    async def send(self, to_address, subject, html):
        await asyncio.sleep(self.delay)
        await super().send(to_address, subject, html)


class TestNotify:
    @pytest.mark.asyncio
    async def test_sends_once_and_flips_flag(self, session, settings, make_lost, make_found):
        lost = make_lost("Blue backpack", contact="owner@example.com")
        found = make_found("blue backpack found", location="Main library")
        match = add_match(session, lost, found, 72)
        mailer = FakeMailer()
        notifier = Notifier(session, mailer, settings)

        first = await notifier.notify(found.id)
        second = await notifier.notify(found.id)

        assert first.notified_count == 1
        assert second.notified_count == 0
        assert len(mailer.sent) == 1
        assert mailer.sent[0]["to"] == "owner@example.com"
        assert mailer.sent[0]["subject"] == MATCH_SUBJECT
        assert "72%" in mailer.sent[0]["html"]
        assert "blue backpack found" in mailer.sent[0]["html"]
        assert reload(session, match).notified is True

    @pytest.mark.asyncio
    async def test_no_matches(self, session, settings, make_found, mailer):
        found = make_found("Umbrella")

        result = await Notifier(session, mailer, settings).notify(found.id)

        assert result.notified_count == 0
        assert mailer.sent == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "contact, anonymous",
        [(None, False), ("", False), ("   ", False), ("owner@example.com", True)],
    )
    async def test_unreachable_owner_stays_unnotified(
        self, session, settings, make_lost, make_found, mailer, contact, anonymous
    ):
        lost = make_lost("Wallet", contact=contact, is_anonymous=anonymous)
        found = make_found("Wallet")
        match = add_match(session, lost, found, 90)
        notifier = Notifier(session, mailer, settings)

        result = await notifier.notify(found.id)
        await notifier.notify(found.id)

        assert result.notified_count == 0
        assert result.skipped_no_contact == 1
        assert mailer.sent == []
        assert reload(session, match).notified is False

    @pytest.mark.asyncio
    async def test_below_notify_threshold_ignored(self, session, settings, make_lost, make_found, mailer):
        lost = make_lost("Wallet", contact="owner@example.com")
        found = make_found("Wallet")
        add_match(session, lost, found, 59)

        result = await Notifier(session, mailer, settings).notify(found.id)

        assert result.notified_count == 0
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_delivery_failure_is_isolated(self, session, settings, make_lost, make_found):
        broken = make_lost("Phone", contact="broken@example.com")
        fine = make_lost("Phone case", contact="fine@example.com")
        found = make_found("Phone")
        broken_match = add_match(session, broken, found, 95)
        fine_match = add_match(session, fine, found, 70)
        mailer = FakeMailer(failing={"broken@example.com"})
        notifier = Notifier(session, mailer, settings)

        result = await notifier.notify(found.id)

        assert result.notified_count == 1
        assert result.failed == 1
        assert [m["to"] for m in mailer.sent] == ["fine@example.com"]
        assert reload(session, broken_match).notified is False
        assert reload(session, fine_match).notified is True

        # the failed row is picked up again on the next call
        mailer.failing.clear()
        retry = await notifier.notify(found.id)

        assert retry.notified_count == 1
        assert [m["to"] for m in mailer.sent] == ["fine@example.com", "broken@example.com"]
        assert reload(session, broken_match).notified is True

    @pytest.mark.asyncio
    async def test_highest_score_first(self, session, settings, make_lost, make_found, mailer):
        found = make_found("Keys")
        for name, score in (("a", 61), ("b", 99), ("c", 75)):
            lost = make_lost(f"Keys {name}", contact=f"{name}@example.com")
            add_match(session, lost, found, score)

        await Notifier(session, mailer, settings).notify(found.id)

        assert [m["to"] for m in mailer.sent] == ["b@example.com", "c@example.com", "a@example.com"]

    @pytest.mark.asyncio
    async def test_unknown_found_item(self, session, settings, mailer):
        with pytest.raises(NotFoundError):
            await Notifier(session, mailer, settings).notify(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_notified_never_reverts(self, session, settings, make_lost, make_found):
        lost = make_lost("Wallet", contact="owner@example.com")
        found = make_found("Wallet")
        match = add_match(session, lost, found, 80, notified=True)
        mailer = FakeMailer(failing={"owner@example.com"})

        result = await Notifier(session, mailer, settings).notify(found.id)

        assert result.failed == 0
        assert reload(session, match).notified is True


class TestMarkFound:
    @pytest.mark.asyncio
    async def test_sends_once(self, session, settings, make_lost, mailer):
        lost = make_lost("Blue backpack", contact="owner@example.com", location="Gym")
        notifier = Notifier(session, mailer, settings)

        assert await notifier.mark_found(lost.id) is True
        assert await notifier.mark_found(lost.id) is False

        assert len(mailer.sent) == 1
        assert mailer.sent[0]["subject"] == ITEM_FOUND_SUBJECT
        assert session.get(LostItem, lost.id).is_found is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "contact, anonymous",
        [("0300 1234567", False), (None, False), ("owner@example.com", True)],
    )
    async def test_no_email_contact(self, session, settings, make_lost, mailer, contact, anonymous):
        lost = make_lost("Blue backpack", contact=contact, is_anonymous=anonymous)

        assert await Notifier(session, mailer, settings).mark_found(lost.id) is False

        assert mailer.sent == []
        assert session.get(LostItem, lost.id).is_found is True

    @pytest.mark.asyncio
    async def test_failed_delivery_keeps_resolution(self, session, settings, make_lost):
        lost = make_lost("Blue backpack", contact="owner@example.com")
        mailer = FakeMailer(failing={"owner@example.com"})

        with pytest.raises(DeliveryError):
            await Notifier(session, mailer, settings).mark_found(lost.id)

        session.expire_all()
        assert session.get(LostItem, lost.id).is_found is True

    @pytest.mark.asyncio
    async def test_unknown_item(self, session, settings, mailer):
        with pytest.raises(NotFoundError):
            await Notifier(session, mailer, settings).mark_found(uuid.uuid4())


class TestConcurrentNotify:
    @pytest.fixture
    def file_engine(self, tmp_path):
        engine = build_engine(
            f"sqlite:///{tmp_path / 'reunite.db'}",
            connect_args={"check_same_thread": False, "timeout": 2},
        )
        init_db(engine)
        yield engine
        engine.dispose()

    @pytest.mark.asyncio
    async def test_two_runs_send_once_without_waiting(self, file_engine, settings):
        lost = LostItem(
            title="Wallet",
            location="Gym",
            date_lost=date(2024, 5, 1),
            contact="owner@example.com",
        )
        found = FoundItem(title="Wallet", location="Gym", date_found=date(2024, 5, 2))
        lost_id, found_id = lost.id, found.id
        with Session(file_engine) as setup:
            setup.add(lost)
            setup.add(found)
            setup.commit()
            setup.add(ItemMatch(lost_item_id=lost_id, found_item_id=found_id, match_score=90))
            setup.commit()

        mailer = SlowMailer(delay=0.2)
        with Session(file_engine) as first, Session(file_engine) as second:
            started = time.monotonic()
            results = await asyncio.gather(
                Notifier(first, mailer, settings).notify(found_id),
                Notifier(second, mailer, settings).notify(found_id),
            )
            elapsed = time.monotonic() - started

        # the second run skips the claimed row instead of waiting on a lock
        assert elapsed < 1.5
        assert sorted(r.notified_count for r in results) == [0, 1]
        assert [r.failed for r in results] == [0, 0]
        assert [m["to"] for m in mailer.sent] == ["owner@example.com"]

        with Session(file_engine) as check:
            stored = check.exec(select(ItemMatch)).one()
            assert stored.notified is True
            assert stored.claimed_at is None

"""
Match notification.

Each eligible match row is claimed with a committed update before its mail
goes out, so no row lock is held across the send and a concurrent run skips
the row instead of waiting on it. Success flips ``notified``; a delivery
failure drops the claim so the row is picked up again on the next ``notify``
call. Nothing is retried in-process.
"""

import uuid
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from reunite.config import Settings
from reunite.errors import DeliveryError, NotFoundError, PersistenceError
from reunite.matching.store import MatchStore
from reunite.models import FoundItem, LostItem
from reunite.utils.email_templates import (
    ITEM_FOUND_SUBJECT,
    MATCH_SUBJECT,
    render_item_found_email,
    render_match_email,
)
from reunite.utils.logger import get_logger
from reunite.utils.mailer import Mailer

logger = get_logger(__name__)


@dataclass
class NotifyResult:
    notified_count: int = 0
    skipped_no_contact: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return {
            "notified": self.notified_count,
            "skipped_no_contact": self.skipped_no_contact,
            "failed": self.failed,
        }


def usable_contact(item) -> bool:
    return bool(item.contact and item.contact.strip()) and not item.is_anonymous


def looks_like_email(contact) -> bool:
    return bool(contact) and "@" in contact


class Notifier:
    def __init__(self, session: Session, mailer: Mailer, settings: Settings):
        self.session = session
        self.mailer = mailer
        self.settings = settings
        self.store = MatchStore(session)

    async def notify(self, found_item_id: uuid.UUID) -> NotifyResult:
        found_item = self.session.get(FoundItem, found_item_id)
        if not found_item:
            raise NotFoundError("Found item not found", {"found_item_id": str(found_item_id)})

        rows = self.store.pending_for_found_item(
            found_item_id, min_score=self.settings.notify_min_score
        )
        # Release the read transaction before claiming rows one by one
        self.session.commit()

        result = NotifyResult()
        log = logger.bind(found_item_id=str(found_item_id))

        for match, lost_item in rows:
            match_id = match.id
            if not usable_contact(lost_item):
                result.skipped_no_contact += 1
                log.info("notification_skipped", match_id=match_id, reason="no_contact")
                continue

            score = match.match_score
            to_address = lost_item.contact.strip()
            html = render_match_email(lost_item, found_item, score, self.settings.mail_team_name)

            if not self.store.claim(match_id, lease_seconds=self.settings.notify_claim_timeout):
                log.info("notification_skipped", match_id=match_id, reason="already_notified")
                continue

            try:
                await self.mailer.send(to_address, MATCH_SUBJECT, html)
            except DeliveryError as e:
                self.store.release(match_id)
                result.failed += 1
                log.warning(
                    "notification_failed",
                    match_id=match_id,
                    reason="delivery_failed",
                    error=e.message,
                )
                continue

            self.store.mark_notified(match_id)
            result.notified_count += 1
            log.info("notification_sent", match_id=match_id, score=score)

        log.info("notify_completed", **result.to_dict())
        return result

    async def mark_found(self, lost_item_id: uuid.UUID) -> bool:
        """
        Mark a lost item as found and tell its owner, once.

        Only the call that actually flips ``is_found`` sends mail, and only
        when the contact looks like an email address. The flip is committed
        before sending, so the resolution stands even if delivery fails.
        Returns True when a message went out.
        """
        lost_item = self.session.get(LostItem, lost_item_id)
        if not lost_item:
            raise NotFoundError("Lost item not found", {"lost_item_id": str(lost_item_id)})

        stmt = (
            update(LostItem)
            .where(LostItem.id == lost_item_id)
            .where(LostItem.is_found == False)  # noqa: E712
            .values(is_found=True)
        )
        try:
            flipped = self.session.execute(stmt).rowcount == 1
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError("Failed to mark item as found", {"error": str(e)}) from e

        log = logger.bind(lost_item_id=str(lost_item_id))

        if not flipped:
            log.info("mark_found_skipped", reason="already_found")
            return False

        if lost_item.is_anonymous or not looks_like_email(lost_item.contact):
            log.info("mark_found_without_notification", reason="no_contact")
            return False

        html = render_item_found_email(lost_item, self.settings.mail_team_name)
        await self.mailer.send(lost_item.contact.strip(), ITEM_FOUND_SUBJECT, html)

        log.info("item_found_notification_sent")
        return True

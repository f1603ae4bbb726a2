"""
Persistence for ranked matches.

The match table is keyed by (lost_item_id, found_item_id). Inserts are
insert-if-absent, and a row is claimed with a short committed update before
any mail goes out, so concurrent ranking or notify runs cannot duplicate rows
or send for the same row twice.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Sequence

from sqlalchemy import or_, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from reunite.errors import PersistenceError
from reunite.matching.ranker import ScoredCandidate
from reunite.models import FOUND, LOST, FoundItem, ItemMatch, LostItem
from reunite.utils.logger import get_logger

logger = get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def item_kind(item) -> str:
    if isinstance(item, LostItem):
        return LOST
    if isinstance(item, FoundItem):
        return FOUND
    raise TypeError(f"Not a lost or found item: {type(item).__name__}")


def pair_ids(subject, candidate) -> tuple[uuid.UUID, uuid.UUID]:
    """Orient a (subject, candidate) pair as (lost_item_id, found_item_id)."""
    if item_kind(subject) == LOST:
        return subject.id, candidate.id
    return candidate.id, subject.id


class MatchStore:
    def __init__(self, session: Session):
        self.session = session

    def _insert_if_absent(self, lost_item_id, found_item_id, score: int) -> bool:
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise PersistenceError(
                f"Unsupported database dialect '{dialect}'",
                {"supported": sorted(_UPSERT_DIALECTS)},
            )

        stmt = (
            insert(ItemMatch.__table__)
            .values(
                created_at=datetime.now(timezone.utc),
                lost_item_id=lost_item_id,
                found_item_id=found_item_id,
                match_score=score,
                notified=False,
            )
            .on_conflict_do_nothing(index_elements=["lost_item_id", "found_item_id"])
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def record(self, matches: Sequence[ScoredCandidate], subject) -> list[ItemMatch]:
        """
        Persist ranked matches for ``subject``, skipping pairs already stored.

        Returns the rows created by this call. Existing rows keep their score
        and notified flag.
        """
        if not matches:
            return []

        inserted = []
        try:
            for match in matches:
                lost_item_id, found_item_id = pair_ids(subject, match.candidate)
                if self._insert_if_absent(lost_item_id, found_item_id, match.score):
                    inserted.append((lost_item_id, found_item_id))
                else:
                    logger.debug(
                        "match_already_recorded",
                        lost_item_id=str(lost_item_id),
                        found_item_id=str(found_item_id),
                    )
            self.session.commit()

            rows = [
                self.session.exec(
                    select(ItemMatch)
                    .where(ItemMatch.lost_item_id == lost_item_id)
                    .where(ItemMatch.found_item_id == found_item_id)
                ).one()
                for lost_item_id, found_item_id in inserted
            ]
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("match_record_failed", subject_id=str(subject.id), error=str(e))
            raise PersistenceError("Failed to record matches", {"error": str(e)}) from e

        logger.info(
            "matches_recorded",
            subject_id=str(subject.id),
            subject_kind=item_kind(subject),
            inserted=len(rows),
            skipped=len(matches) - len(rows),
        )
        return rows

    def pending_for_found_item(
        self, found_item_id: uuid.UUID, min_score: int = 60
    ) -> list[tuple[ItemMatch, LostItem]]:
        """Un-notified matches for a found item at or above ``min_score``, best first."""
        query = (
            select(ItemMatch, LostItem)
            .join(LostItem, LostItem.id == ItemMatch.lost_item_id)
            .where(ItemMatch.found_item_id == found_item_id)
            .where(ItemMatch.notified == False)  # noqa: E712
            .where(ItemMatch.match_score >= min_score)
            .order_by(ItemMatch.match_score.desc(), ItemMatch.id)
        )
        try:
            return list(self.session.exec(query).all())
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load pending matches", {"error": str(e)}) from e

    def _execute_and_commit(self, stmt, failure: str, match_id: int) -> bool:
        try:
            changed = self.session.execute(stmt).rowcount == 1
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(failure, {"match_id": match_id, "error": str(e)}) from e
        return changed

    def claim(self, match_id: int, lease_seconds: int = 300) -> bool:
        """
        Reserve an un-notified row for sending.

        The claim is committed straight away, so no lock is held while the
        message is out. Returns False when the row is already notified or
        another run holds a claim younger than ``lease_seconds``.
        """
        now = datetime.now(timezone.utc)
        table = ItemMatch.__table__
        stmt = (
            update(table)
            .where(table.c.id == match_id)
            .where(table.c.notified == False)  # noqa: E712
            .where(
                or_(
                    table.c.claimed_at.is_(None),
                    table.c.claimed_at < now - timedelta(seconds=lease_seconds),
                )
            )
            .values(claimed_at=now)
        )
        return self._execute_and_commit(stmt, "Failed to claim match", match_id)

    def mark_notified(self, match_id: int) -> bool:
        """Flip ``notified`` to True for a claimed row. It never goes back."""
        table = ItemMatch.__table__
        stmt = (
            update(table)
            .where(table.c.id == match_id)
            .where(table.c.notified == False)  # noqa: E712
            .values(notified=True, claimed_at=None)
        )
        return self._execute_and_commit(
            stmt, "Mail sent but notified flag could not be saved", match_id
        )

    def release(self, match_id: int) -> None:
        """Drop a claim after a failed send so the next run can pick the row up."""
        table = ItemMatch.__table__
        stmt = (
            update(table)
            .where(table.c.id == match_id)
            .where(table.c.notified == False)  # noqa: E712
            .values(claimed_at=None)
        )
        self._execute_and_commit(stmt, "Failed to release match claim", match_id)

    def for_lost_item(self, lost_item_id: uuid.UUID) -> list[tuple[ItemMatch, FoundItem]]:
        query = (
            select(ItemMatch, FoundItem)
            .join(FoundItem, FoundItem.id == ItemMatch.found_item_id)
            .where(ItemMatch.lost_item_id == lost_item_id)
            .order_by(ItemMatch.match_score.desc(), ItemMatch.id)
        )
        try:
            return list(self.session.exec(query).all())
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load matches", {"error": str(e)}) from e

    def for_found_item(self, found_item_id: uuid.UUID) -> list[tuple[ItemMatch, LostItem]]:
        query = (
            select(ItemMatch, LostItem)
            .join(LostItem, LostItem.id == ItemMatch.lost_item_id)
            .where(ItemMatch.found_item_id == found_item_id)
            .order_by(ItemMatch.match_score.desc(), ItemMatch.id)
        )
        try:
            return list(self.session.exec(query).all())
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load matches", {"error": str(e)}) from e

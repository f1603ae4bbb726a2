import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from reunite.config import Settings
from reunite.errors import InvalidInputError, NotFoundError, PersistenceError
from reunite.matching.notifier import Notifier, NotifyResult
from reunite.matching.ranker import ScoredCandidate, rank
from reunite.matching.scorer import Scorer
from reunite.matching.store import MatchStore
from reunite.models import FOUND, FOUND_ITEM_STATUSES, LOST, FoundItem, LostItem
from reunite.utils.logger import get_logger
from reunite.utils.mailer import Mailer

logger = get_logger(__name__)

ITEM_MODELS = {
    LOST: LostItem,
    FOUND: FoundItem,
}


class MatchingEngine:
    """Entry points the surrounding app calls when items are reported or moderated."""

    def __init__(self, session: Session, scorer: Scorer, mailer: Mailer, settings: Settings):
        self.session = session
        self.scorer = scorer
        self.settings = settings
        self.store = MatchStore(session)
        self.notifier = Notifier(session, mailer, settings)

    def _get_item(self, kind: str, item_id: uuid.UUID):
        model = ITEM_MODELS.get(kind)
        if model is None:
            raise InvalidInputError(f"Unknown item kind '{kind}'", {"allowed": list(ITEM_MODELS)})

        try:
            item = self.session.get(model, item_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load {kind} item", {"error": str(e)}) from e

        if not item:
            raise NotFoundError(f"{kind.capitalize()} item not found", {"item_id": str(item_id)})
        return item

    def _candidates(self, kind: str) -> list:
        if kind == LOST:
            query = select(FoundItem)
            if self.settings.match_approved_only:
                query = query.where(FoundItem.status == "approved")
            query = query.order_by(FoundItem.created_at, FoundItem.id)
        else:
            query = select(LostItem).order_by(LostItem.created_at, LostItem.id)

        try:
            return list(self.session.exec(query).all())
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load candidate items", {"error": str(e)}) from e

    async def on_item_reported(self, kind: str, item_id: uuid.UUID) -> list[ScoredCandidate]:
        """
        Rank a stored item against every item of the opposite kind and
        record the top matches.

        A scoring failure aborts before anything is written.
        """
        subject = self._get_item(kind, item_id)

        if kind == FOUND and self.settings.match_approved_only and subject.status != "approved":
            logger.info("ranking_deferred", item_id=str(item_id), status=subject.status)
            return []

        candidates = self._candidates(kind)
        matches = await rank(
            subject,
            candidates,
            self.scorer,
            threshold=self.settings.min_score,
            top_k=self.settings.match_top_k,
        )
        self.store.record(matches, subject)

        # the commit expired them; callers serialise these
        for match in matches:
            self.session.refresh(match.candidate)
        return matches

    def set_status(self, found_item_id: uuid.UUID, status: str) -> FoundItem:
        if status not in FOUND_ITEM_STATUSES:
            raise InvalidInputError(f"Invalid status '{status}'", {"allowed": list(FOUND_ITEM_STATUSES)})

        found_item = self._get_item(FOUND, found_item_id)
        found_item.status = status

        try:
            self.session.add(found_item)
            self.session.commit()
            self.session.refresh(found_item)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError("Failed to update item status", {"error": str(e)}) from e

        logger.info("found_item_status_changed", found_item_id=str(found_item_id), status=status)
        return found_item

    async def approve(self, found_item_id: uuid.UUID) -> FoundItem:
        found_item = self.set_status(found_item_id, "approved")

        # Ranking was deferred at report time when only approved items match
        if self.settings.match_approved_only:
            await self.on_item_reported(FOUND, found_item_id)

        return found_item

    async def on_approve_and_notify(self, found_item_id: uuid.UUID) -> NotifyResult:
        await self.approve(found_item_id)
        return await self.notifier.notify(found_item_id)

    async def notify(self, found_item_id: uuid.UUID) -> NotifyResult:
        return await self.notifier.notify(found_item_id)

    async def mark_found(self, lost_item_id: uuid.UUID) -> bool:
        return await self.notifier.mark_found(lost_item_id)

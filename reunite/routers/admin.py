import uuid
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session, select

from reunite.db.db import get_session
from reunite.matching import MatchingEngine
from reunite.models import FoundItem
from reunite.utils.engine_helper import get_matching_engine

router = APIRouter()


# Response Models
class NotifySummary(BaseModel):
    notified: int
    skipped_no_contact: int
    failed: int


class ModerationResult(BaseModel):
    id: str
    status: str
    notifications: Optional[NotifySummary] = None


class MarkFoundResult(BaseModel):
    id: str
    owner_notified: bool


@router.get("/found-items/pending")
def get_pending_found_items(session: Session = Depends(get_session)):
    """Found items waiting for moderation, newest first"""
    return session.exec(
        select(FoundItem)
        .where(FoundItem.status == "pending")
        .order_by(FoundItem.created_at.desc())
    ).all()


@router.post("/found-items/{item_id}/approve", response_model=ModerationResult)
async def approve_found_item(
    item_id: uuid.UUID,
    notify: bool = False,
    engine: MatchingEngine = Depends(get_matching_engine),
):
    if notify:
        result = await engine.on_approve_and_notify(item_id)
        return ModerationResult(
            id=str(item_id),
            status="approved",
            notifications=NotifySummary(**result.to_dict()),
        )

    item = await engine.approve(item_id)
    return ModerationResult(id=str(item.id), status=item.status)


@router.post("/found-items/{item_id}/reject", response_model=ModerationResult)
def reject_found_item(
    item_id: uuid.UUID,
    engine: MatchingEngine = Depends(get_matching_engine),
):
    item = engine.set_status(item_id, "rejected")
    return ModerationResult(id=str(item.id), status=item.status)


@router.post("/found-items/{item_id}/notify", response_model=NotifySummary)
async def notify_matches(
    item_id: uuid.UUID,
    engine: MatchingEngine = Depends(get_matching_engine),
):
    result = await engine.notify(item_id)
    return NotifySummary(**result.to_dict())


@router.post("/lost-items/{item_id}/mark-found", response_model=MarkFoundResult)
async def mark_lost_item_found(
    item_id: uuid.UUID,
    engine: MatchingEngine = Depends(get_matching_engine),
):
    sent = await engine.mark_found(item_id)
    return MarkFoundResult(id=str(item_id), owner_notified=sent)

import uuid
from fastapi import APIRouter, Depends
from sqlmodel import Session

from reunite.db.db import get_session
from reunite.matching import MatchingEngine, MatchStore
from reunite.models import FOUND, LOST
from reunite.utils.engine_helper import get_matching_engine

router = APIRouter()


def _serialize(rows):
    return [
        {
            "id": match.id,
            "score": match.match_score,
            "notified": match.notified,
            "item": item.model_dump(mode="json"),
        }
        for match, item in rows
    ]


@router.post("/lost/{item_id}")
async def match_lost_item(
    item_id: uuid.UUID,
    engine: MatchingEngine = Depends(get_matching_engine),
):
    matches = await engine.on_item_reported(LOST, item_id)
    return {"matches": [m.to_dict() for m in matches]}


@router.post("/found/{item_id}")
async def match_found_item(
    item_id: uuid.UUID,
    engine: MatchingEngine = Depends(get_matching_engine),
):
    matches = await engine.on_item_reported(FOUND, item_id)
    return {"matches": [m.to_dict() for m in matches]}


@router.get("/lost/{item_id}")
async def get_lost_item_matches(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return {"matches": _serialize(MatchStore(session).for_lost_item(item_id))}


@router.get("/found/{item_id}")
async def get_found_item_matches(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return {"matches": _serialize(MatchStore(session).for_found_item(item_id))}

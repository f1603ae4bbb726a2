from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from reunite.db.db import get_session
from reunite.matching import MatchingEngine
from reunite.models import LOST, LostItem
from reunite.utils.engine_helper import get_matching_engine
from reunite.utils.form_validator import ItemReport

router = APIRouter()


@router.post("/")
async def add_lost_item(
    payload: ItemReport,
    session: Session = Depends(get_session),
    engine: MatchingEngine = Depends(get_matching_engine),
):
    db_item = LostItem(
        title=payload.title,
        description=payload.description,
        location=payload.location,
        date_lost=payload.date,
        contact=payload.contact,
        is_anonymous=payload.is_anonymous,
        image_url=payload.image_url,
    )

    session.add(db_item)
    session.commit()
    session.refresh(db_item)

    # look for found items that could be this one
    matches = await engine.on_item_reported(LOST, db_item.id)

    return {
        "id": str(db_item.id),
        "matches": [m.to_dict() for m in matches],
    }


@router.get("/")
async def get_lost_items(session: Session = Depends(get_session)):
    items = session.exec(select(LostItem).order_by(LostItem.created_at.desc())).all()
    return items

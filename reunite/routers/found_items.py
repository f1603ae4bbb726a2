from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from reunite.db.db import get_session
from reunite.matching import MatchingEngine
from reunite.models import FOUND, FoundItem
from reunite.utils.engine_helper import get_matching_engine
from reunite.utils.form_validator import ItemReport

router = APIRouter()


@router.post("/")
async def add_found_item(
    payload: ItemReport,
    session: Session = Depends(get_session),
    engine: MatchingEngine = Depends(get_matching_engine),
):
    db_item = FoundItem(
        title=payload.title,
        description=payload.description,
        location=payload.location,
        date_found=payload.date,
        contact=payload.contact,
        is_anonymous=payload.is_anonymous,
        image_url=payload.image_url,
    )

    session.add(db_item)
    session.commit()
    session.refresh(db_item)

    # found items are matched straight away, moderation status permitting
    matches = await engine.on_item_reported(FOUND, db_item.id)

    return {
        "id": str(db_item.id),
        "matches": [m.to_dict() for m in matches],
    }


@router.get("/")
async def get_found_items(
    status: str = "approved",
    session: Session = Depends(get_session),
):
    query = select(FoundItem).order_by(FoundItem.created_at.desc())

    if status != "all":
        query = query.where(FoundItem.status == status)

    return session.exec(query).all()

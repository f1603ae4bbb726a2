from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import date, datetime, timezone


class LostItem(SQLModel, table=True):
    __tablename__ = "lost_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)

    # Item fields
    title: str
    description: Optional[str] = None
    location: str
    date_lost: date
    image_url: Optional[str] = None

    # Owner contact, usually an email
    contact: Optional[str] = None
    is_anonymous: bool = Field(default=False)

    # Flipped once by a moderator when the owner gets the item back
    is_found: bool = Field(default=False, index=True)

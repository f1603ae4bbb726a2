from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import date, datetime, timezone


class FoundItem(SQLModel, table=True):
    __tablename__ = "found_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)

    # Item fields
    title: str
    description: Optional[str] = None
    location: str
    date_found: date
    image_url: Optional[str] = None

    # Finder contact
    contact: Optional[str] = None
    is_anonymous: bool = Field(default=False)

    # Moderation
    status: str = Field(default="pending", index=True)  # "pending", "approved", "rejected"

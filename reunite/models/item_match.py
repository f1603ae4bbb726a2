from typing import Optional
import uuid
from sqlmodel import Field, SQLModel, UniqueConstraint
from datetime import datetime, timezone


class ItemMatch(SQLModel, table=True):
    __tablename__ = "item_matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    lost_item_id: uuid.UUID = Field(foreign_key="lost_items.id", index=True, ondelete="CASCADE")
    found_item_id: uuid.UUID = Field(foreign_key="found_items.id", index=True, ondelete="CASCADE")

    # Fixed at insert time, 0-100
    match_score: int = Field(ge=0, le=100)

    # Only ever flips False -> True
    notified: bool = Field(default=False, index=True)

    # Set while a notifier is sending for this row; stale claims can be taken over
    claimed_at: Optional[datetime] = Field(default=None)

    __table_args__ = (
        # A lost/found pair is matched at most once, however often ranking re-runs
        UniqueConstraint(
            "lost_item_id",
            "found_item_id",
            name="uq_item_matches_pair"
        ),
    )

from reunite.models.found_item import FoundItem
from reunite.models.item_match import ItemMatch
from reunite.models.lost_item import LostItem

LOST = "lost"
FOUND = "found"

FOUND_ITEM_STATUSES = ("pending", "approved", "rejected")

__all__ = [
    "FoundItem",
    "ItemMatch",
    "LostItem",
    "LOST",
    "FOUND",
    "FOUND_ITEM_STATUSES",
]

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Collection:
    """
    A user-owned named grouping of cards.

    Attributes:
        id: Server-assigned identifier
        name: Display name shown in the header
        language: Language tag of the cards in this collection
        user_id: Owner reference
        description: Optional free text
    """

    id: int
    name: str
    user_id: int
    language: str = "english"
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class CollectionCardEntry:
    """
    One (collection, card) row with the quantity owned.

    Quantity is at least 1 while the entry exists; reaching 0 deletes it.
    updated_at orders display only and never resolves conflicts.
    """

    collection_id: int
    card_id: str
    quantity: int
    updated_at: datetime | None = None
    id: int | None = None
    added_at: datetime | None = None

    @property
    def key(self) -> tuple[int, str]:
        return (self.collection_id, self.card_id)

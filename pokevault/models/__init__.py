from pokevault.models.card import (
    Ability,
    Attack,
    CardImages,
    CardMetadataRecord,
    CardView,
    KnownCard,
    MarketLink,
    PendingCard,
    SetSummary,
)
from pokevault.models.collection import Collection, CollectionCardEntry
from pokevault.models.failure import (
    CardMetadataError,
    CollectionLimitError,
    ConflictError,
    FailureKind,
    KnownError,
    NetworkError,
    NoActiveCollectionError,
    NotFoundError,
    StoreError,
)
from pokevault.models.notification import Notification, NotificationLevel

__all__ = [
    "Ability",
    "Attack",
    "CardImages",
    "CardMetadataError",
    "CardMetadataRecord",
    "CardView",
    "Collection",
    "CollectionCardEntry",
    "CollectionLimitError",
    "ConflictError",
    "FailureKind",
    "KnownCard",
    "KnownError",
    "MarketLink",
    "NetworkError",
    "NoActiveCollectionError",
    "NotFoundError",
    "Notification",
    "NotificationLevel",
    "PendingCard",
    "SetSummary",
    "StoreError",
]

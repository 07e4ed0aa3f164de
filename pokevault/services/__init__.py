"""
pokevault services.

Client-side collection cache and optimistic synchronization.
"""

from pokevault.services.active_collection import ActiveCollectionState
from pokevault.services.collection_context import CollectionContext
from pokevault.services.collection_index import CollectionCardIndex
from pokevault.services.collection_views import (
    AggregatedCard,
    CollectionStats,
    OwnedCard,
    all_cards_view,
    collection_card_ids,
    collection_stats,
    collection_view,
)
from pokevault.services.metadata_cache import CardMetadataCache, MetadataSource
from pokevault.services.notifications import Notifier
from pokevault.services.optimistic_engine import OptimisticUpdateEngine, PendingOperation

__all__ = [
    "ActiveCollectionState",
    "AggregatedCard",
    "CardMetadataCache",
    "CollectionCardIndex",
    "CollectionContext",
    "CollectionStats",
    "MetadataSource",
    "Notifier",
    "OptimisticUpdateEngine",
    "OwnedCard",
    "PendingOperation",
    "all_cards_view",
    "collection_card_ids",
    "collection_stats",
    "collection_view",
]

"""
Derived read models over the collection index.

Recomputed on every call; nothing here is cached. Cards whose metadata is
missing come back as PendingCard and trigger one background fetch each.
"""

from collections import Counter
from dataclasses import dataclass, field

from pokevault.models.card import CardView, KnownCard
from pokevault.services.collection_index import CollectionCardIndex
from pokevault.services.metadata_cache import CardMetadataCache


@dataclass(frozen=True, slots=True)
class OwnedCard:
    """A card in one collection with its quantity."""

    card: CardView
    quantity: int
    collection_id: int

    @property
    def card_id(self) -> str:
        return self.card.card_id


@dataclass(frozen=True, slots=True)
class AggregatedCard:
    """A card across all collections with summed quantity."""

    card: CardView
    quantity: int
    collection_ids: tuple[int, ...]

    @property
    def card_id(self) -> str:
        return self.card.card_id


@dataclass
class CollectionStats:
    """Counts for the statistics page."""

    total_cards: int = 0
    unique_cards: int = 0
    by_rarity: dict[str, int] = field(default_factory=dict)
    by_supertype: dict[str, int] = field(default_factory=dict)
    # Keyed by set id; set names repeat across reprints and languages
    by_set: dict[str, int] = field(default_factory=dict)
    # Cards counted in totals whose metadata is still loading
    pending_cards: int = 0


def collection_card_ids(index: CollectionCardIndex, collection_id: int) -> list[str]:
    """Card ids held in a collection."""
    return [entry.card_id for entry in index.entries_for(collection_id)]


def collection_view(
    index: CollectionCardIndex, cache: CardMetadataCache, collection_id: int
) -> list[OwnedCard]:
    """Entries of one collection joined with card metadata."""
    return [
        OwnedCard(
            card=cache.request(entry.card_id),
            quantity=entry.quantity,
            collection_id=entry.collection_id,
        )
        for entry in index.entries_for(collection_id)
    ]


def all_cards_view(index: CollectionCardIndex, cache: CardMetadataCache) -> list[AggregatedCard]:
    """
    Every owned card across all collections.

    Quantities are summed per card id; collection_ids lists the owning
    collections in index order.
    """
    totals: dict[str, int] = {}
    owners: dict[str, list[int]] = {}

    for entry in index.all_entries():
        totals[entry.card_id] = totals.get(entry.card_id, 0) + entry.quantity
        owners.setdefault(entry.card_id, []).append(entry.collection_id)

    return [
        AggregatedCard(
            card=cache.request(card_id),
            quantity=quantity,
            collection_ids=tuple(owners[card_id]),
        )
        for card_id, quantity in totals.items()
    ]


def collection_stats(
    index: CollectionCardIndex,
    cache: CardMetadataCache,
    collection_id: int | None = None,
) -> CollectionStats:
    """
    Summarize one collection, or all of them when collection_id is None.

    Cards without metadata count toward totals and pending_cards only.
    """
    entries = index.all_entries() if collection_id is None else index.entries_for(collection_id)

    stats = CollectionStats()
    by_rarity: Counter[str] = Counter()
    by_supertype: Counter[str] = Counter()
    by_set: Counter[str] = Counter()
    unique: set[str] = set()

    for entry in entries:
        stats.total_cards += entry.quantity
        unique.add(entry.card_id)

        view = cache.request(entry.card_id)
        if not isinstance(view, KnownCard):
            stats.pending_cards += entry.quantity
            continue

        record = view.record
        by_rarity[record.rarity or "Unknown"] += entry.quantity
        by_supertype[record.supertype or "Unknown"] += entry.quantity
        by_set[record.set_id or "Unknown"] += entry.quantity

    stats.unique_cards = len(unique)
    stats.by_rarity = dict(by_rarity)
    stats.by_supertype = dict(by_supertype)
    stats.by_set = dict(by_set)
    return stats

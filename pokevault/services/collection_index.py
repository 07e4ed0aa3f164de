"""
Collection card index.

In-memory projection of every (collection, card, quantity) entry owned by
the current user. The index is replaced wholesale by refresh() and patched
incrementally only by the optimistic update engine.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pokevault.clients.card_store import CardStore
from pokevault.models.collection import CollectionCardEntry

logger = logging.getLogger(__name__)

IndexListener = Callable[["CollectionCardIndex"], None]

EntryKey = tuple[int, str]


def _newer(a: CollectionCardEntry, b: CollectionCardEntry) -> CollectionCardEntry:
    if a.updated_at is None:
        return b
    if b.updated_at is None:
        return a
    return b if b.updated_at >= a.updated_at else a


class CollectionCardIndex:
    """
    Snapshot of the user's collection entries.

    A failed refresh keeps the previous snapshot: stale-but-present is
    preferred over empty.
    """

    def __init__(self, store: CardStore, user_id: int | None = None) -> None:
        self._store = store
        self.user_id = user_id
        self._entries: dict[EntryKey, CollectionCardEntry] = {}
        self._listeners: list[IndexListener] = []
        self.loaded = False
        self.refreshed_at: datetime | None = None
        self.last_error: Exception | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def subscribe(self, listener: IndexListener) -> Callable[[], None]:
        """Call listener after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Reads ---

    def get(self, collection_id: int, card_id: str) -> CollectionCardEntry | None:
        return self._entries.get((collection_id, card_id))

    def quantity_of(self, collection_id: int, card_id: str) -> int:
        """Quantity owned in a collection; 0 if absent."""
        entry = self._entries.get((collection_id, card_id))
        return entry.quantity if entry else 0

    def entries_for(self, collection_id: int) -> list[CollectionCardEntry]:
        return [e for e in self._entries.values() if e.collection_id == collection_id]

    def all_entries(self) -> list[CollectionCardEntry]:
        return list(self._entries.values())

    # --- Wholesale replacement ---

    async def refresh(self) -> list[CollectionCardEntry]:
        """
        Replace the snapshot with the store's current entries.

        Raises:
            StoreError: If the store cannot be read. The previous snapshot
                is kept.
        """
        if self.user_id is None:
            self.replace([])
            return []

        try:
            entries = await self._store.list_entries(self.user_id)
        except Exception as e:
            self.last_error = e
            logger.warning(
                "Refresh failed for user %s; keeping previous snapshot: %s", self.user_id, e
            )
            raise

        self.last_error = None
        self.replace(entries)
        return entries

    def replace(self, entries: list[CollectionCardEntry]) -> None:
        snapshot: dict[EntryKey, CollectionCardEntry] = {}
        for entry in entries:
            if entry.quantity < 1:
                logger.warning("Ignoring entry %s with quantity %d", entry.key, entry.quantity)
                continue
            existing = snapshot.get(entry.key)
            if existing is not None:
                logger.warning("Store returned duplicate entry for %s", entry.key)
                entry = _newer(existing, entry)
            snapshot[entry.key] = entry

        self._entries = snapshot
        self.loaded = True
        self.refreshed_at = datetime.now(UTC)
        self._emit()

    def clear(self) -> None:
        self._entries = {}
        self.loaded = False
        self.refreshed_at = None
        self._emit()

    # --- Optimistic patches (update engine only) ---

    def put_entry(self, entry: CollectionCardEntry) -> None:
        self._entries[entry.key] = entry
        self._emit()

    def remove_entry(self, collection_id: int, card_id: str) -> CollectionCardEntry | None:
        removed = self._entries.pop((collection_id, card_id), None)
        if removed is not None:
            self._emit()
        return removed

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self)

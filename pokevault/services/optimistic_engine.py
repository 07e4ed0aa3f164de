"""
Optimistic update engine.

Applies add/remove intents to the collection index immediately, then
performs the durable write in the background and refreshes the index from
the store once the write settles.

Per intent:
1. Deduplicate on "{op}-{collection_id}-{card_id}". A request whose key is
   already pending is dropped whole: no patch, no notification, no write.
2. Patch the index synchronously and notify the user.
3. Write to the store in a background task.
4. On success or failure, refresh the index. The refresh is the only
   correction mechanism; a failed write is not rolled back.
5. Release the pending key a short grace period later.
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Literal

from pokevault.clients.card_store import CardStore
from pokevault.config import settings
from pokevault.models.collection import Collection, CollectionCardEntry
from pokevault.models.failure import (
    ConflictError,
    NoActiveCollectionError,
    NotFoundError,
    StoreError,
)
from pokevault.services.active_collection import ActiveCollectionState
from pokevault.services.collection_index import CollectionCardIndex
from pokevault.services.metadata_cache import CardMetadataCache
from pokevault.services.notifications import Notifier

logger = logging.getLogger(__name__)

Operation = Literal["add", "remove"]


@dataclass(frozen=True, slots=True)
class PendingOperation:
    """Marker for a background write in flight."""

    op: Operation
    collection_id: int
    card_id: str

    @property
    def key(self) -> str:
        return f"{self.op}-{self.collection_id}-{self.card_id}"


class OptimisticUpdateEngine:
    """
    Add/remove intents with optimistic index patches and background sync.

    Args:
        index: Projection patched on every accepted intent
        cache: Card metadata; add waits for it, remove only reads it
        store: Durable destination of the writes
        notifier: Receives one notification per accepted intent
        active: Supplies the active collection
        grace_seconds: Delay between write completion and releasing the
            pending key. Defaults to settings.pending_grace_seconds
    """

    def __init__(
        self,
        index: CollectionCardIndex,
        cache: CardMetadataCache,
        store: CardStore,
        notifier: Notifier,
        active: ActiveCollectionState,
        grace_seconds: float | None = None,
    ) -> None:
        self._index = index
        self._cache = cache
        self._store = store
        self._notifier = notifier
        self._active = active
        self.grace_seconds = (
            settings.pending_grace_seconds if grace_seconds is None else grace_seconds
        )
        self._pending: dict[str, PendingOperation] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._release_handles: dict[str, asyncio.TimerHandle] = {}

    # --- Pending operations ---

    def is_pending(self, op: Operation, collection_id: int, card_id: str) -> bool:
        return PendingOperation(op, collection_id, card_id).key in self._pending

    def pending_keys(self) -> set[str]:
        return set(self._pending)

    def _claim(self, op: PendingOperation) -> bool:
        if op.key in self._pending:
            logger.debug("Dropping duplicate request %s", op.key)
            return False
        self._pending[op.key] = op
        return True

    def _release(self, op: PendingOperation) -> None:
        self._release_handles.pop(op.key, None)
        self._pending.pop(op.key, None)

    def _schedule_release(self, op: PendingOperation) -> None:
        if self.grace_seconds <= 0:
            self._release(op)
            return
        loop = asyncio.get_running_loop()
        self._release_handles[op.key] = loop.call_later(self.grace_seconds, self._release, op)

    # --- Intents ---

    def _require_collection(self, collection_id: int | None) -> Collection:
        """
        Resolve the target collection.

        Raises:
            NoActiveCollectionError: If no collection is active
        """
        active = self._active.active_collection
        if active is None:
            error = NoActiveCollectionError()
            self._notifier.error("No active collection", error.message)
            raise error

        if collection_id is None or collection_id == active.id:
            return active
        return self._active.find(collection_id) or Collection(
            id=collection_id, name=f"collection {collection_id}", user_id=active.user_id
        )

    async def request_add(
        self, collection_id: int | None, card_id: str
    ) -> asyncio.Task[None] | None:
        """
        Add one copy of a card.

        The index shows the new quantity when this returns; the durable write
        continues in the returned task.

        Returns:
            The background task, or None if the request was dropped or failed
            before any patch was applied

        Raises:
            NoActiveCollectionError: If no collection is active
        """
        collection = self._require_collection(collection_id)
        op = PendingOperation("add", collection.id, card_id)
        if not self._claim(op):
            return None

        # Not optimistic: the entry's display needs name and images
        try:
            record = await self._cache.ensure(card_id)
        except asyncio.CancelledError:
            self._schedule_release(op)
            raise
        except Exception as e:
            logger.warning("Cannot add %s: metadata unavailable: %s", card_id, e)
            self._notifier.error("Error adding card", getattr(e, "message", str(e)))
            self._schedule_release(op)
            return None

        now = datetime.now(UTC)
        existing = self._index.get(collection.id, card_id)
        if existing is not None:
            self._index.put_entry(replace(existing, quantity=existing.quantity + 1, updated_at=now))
        else:
            self._index.put_entry(
                CollectionCardEntry(
                    collection_id=collection.id,
                    card_id=card_id,
                    quantity=1,
                    updated_at=now,
                    added_at=now,
                )
            )

        self._notifier.success("Card Added", f"{record.name} added to {collection.name}")
        return self._spawn(op, self._write_add(op, existing), "Error adding card")

    async def request_remove(
        self, collection_id: int | None, card_id: str
    ) -> asyncio.Task[None] | None:
        """
        Remove one copy of a card; the last copy deletes the entry.

        Returns:
            The background task, or None if the request was dropped or the
            card is not in the collection

        Raises:
            NoActiveCollectionError: If no collection is active
        """
        collection = self._require_collection(collection_id)
        op = PendingOperation("remove", collection.id, card_id)
        if op.key in self._pending:
            logger.debug("Dropping duplicate request %s", op.key)
            return None

        existing = self._index.get(collection.id, card_id)
        if existing is None:
            self._notifier.error("Card Not Found", "This card was not found in your collection")
            return None

        self._claim(op)
        record = self._cache.get(card_id)
        card_name = record.name if record else "Card"

        if existing.quantity > 1:
            new_quantity = existing.quantity - 1
            self._index.put_entry(
                replace(existing, quantity=new_quantity, updated_at=datetime.now(UTC))
            )
            self._notifier.success("Card Updated", f"Quantity decreased to {new_quantity}")
        else:
            self._index.remove_entry(collection.id, card_id)
            self._notifier.success("Card Removed", f"{card_name} removed from {collection.name}")

        return self._spawn(op, self._write_remove(op, existing), "Error removing card")

    # --- Background writes ---

    def _spawn(
        self, op: PendingOperation, write: Awaitable[None], failure_title: str
    ) -> asyncio.Task[None]:
        task = asyncio.create_task(self._run(op, write, failure_title), name=op.key)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, op: PendingOperation, write: Awaitable[None], failure_title: str) -> None:
        try:
            await write
        except NotFoundError as e:
            self._notifier.error("Card Not Found", e.message)
        except StoreError as e:
            self._notifier.error(failure_title, e.message)
        except Exception as e:
            logger.exception("Background write %s failed", op.key)
            self._notifier.error(failure_title, str(e) or "An error occurred")
        finally:
            await self._reconcile(op)
            self._schedule_release(op)

    async def _write_add(
        self, op: PendingOperation, existing: CollectionCardEntry | None
    ) -> None:
        if existing is not None:
            await self._store.update_quantity(op.collection_id, op.card_id, existing.quantity + 1)
            return

        try:
            await self._store.create_entry(op.collection_id, op.card_id, 1)
        except ConflictError:
            # Another device created the row first; add on top of its quantity
            logger.info("Create conflict for %s; falling back to update", op.key)
            await self._index.refresh()
            server_quantity = self._index.quantity_of(op.collection_id, op.card_id)
            if server_quantity == 0:
                await self._store.create_entry(op.collection_id, op.card_id, 1)
            else:
                await self._store.update_quantity(
                    op.collection_id, op.card_id, server_quantity + 1
                )

    async def _write_remove(self, op: PendingOperation, existing: CollectionCardEntry) -> None:
        if existing.quantity > 1:
            await self._store.update_quantity(op.collection_id, op.card_id, existing.quantity - 1)
        else:
            await self._store.delete_entry(op.collection_id, op.card_id)

    async def _reconcile(self, op: PendingOperation) -> None:
        try:
            await self._index.refresh()
        except Exception as e:
            logger.warning("Refresh after %s failed: %s", op.key, e)

    # --- Lifecycle ---

    async def drain(self) -> None:
        """Wait for every background write and its refresh to finish."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def close(self) -> None:
        """Release all pending keys now, cancelling their grace timers."""
        for handle in self._release_handles.values():
            handle.cancel()
        self._release_handles.clear()
        self._pending.clear()

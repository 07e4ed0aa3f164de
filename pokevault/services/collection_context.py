"""
Collection context.

Single entry point for views: owns the active collection state, the
collection index, the metadata cache and the update engine for one user,
and exposes intents and read models over them.
"""

import asyncio
import contextlib
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pokevault.clients.card_store import CardStore
from pokevault.config import MAX_COLLECTIONS_PER_USER, settings
from pokevault.db.operations import (
    ACTIVE_COLLECTION_KEY,
    delete_setting,
    get_setting,
    set_setting,
)
from pokevault.models.collection import Collection
from pokevault.models.failure import CollectionLimitError
from pokevault.services.active_collection import ActiveCollectionState
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
from pokevault.services.optimistic_engine import OptimisticUpdateEngine

logger = logging.getLogger(__name__)


class CollectionContext:
    """
    Collection state and intents for the signed-in user.

    Args:
        store: Remote card store
        source: Reference catalog for card metadata
        session_factory: Local database; persists card metadata and the
            active collection id. None keeps both in memory.
        notifier: Shared notifier. A new one is created if omitted.
        grace_seconds: Pending-key grace period passed to the engine
    """

    def __init__(
        self,
        store: CardStore,
        source: MetadataSource,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        notifier: Notifier | None = None,
        grace_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._session_factory = session_factory
        self.notifier = notifier or Notifier()
        self.active = ActiveCollectionState()
        self.index = CollectionCardIndex(store)
        self.cache = CardMetadataCache(source, session_factory)
        self.engine = OptimisticUpdateEngine(
            self.index,
            self.cache,
            store,
            self.notifier,
            self.active,
            grace_seconds=grace_seconds,
        )
        self.user_id: int | None = None
        self._poll_task: asyncio.Task[None] | None = None

    # --- Session lifecycle ---

    async def start(self, user_id: int) -> None:
        """
        Load state for a freshly signed-in user.

        Warms the metadata cache from local storage, restores the last
        active collection and fetches collections and entries.
        """
        self.user_id = user_id
        self.index.user_id = user_id
        self.index.clear()

        await self.cache.load()
        self.active.select(await self._load_active_id())
        await self.refresh_collections()
        await self.index.refresh()

    async def stop(self) -> None:
        """Stop polling and wait for background writes to settle."""
        await self.stop_polling()
        await self.engine.drain()
        self.engine.close()

    def start_polling(self, interval: float | None = None) -> None:
        """Refresh the index periodically to pick up other devices' changes."""
        if self._poll_task is not None and not self._poll_task.done():
            return
        period = settings.poll_interval_seconds if interval is None else interval
        self._poll_task = asyncio.create_task(self._poll(period))

    async def stop_polling(self) -> None:
        if self._poll_task is None:
            return
        self._poll_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._poll_task
        self._poll_task = None

    async def _poll(self, period: float) -> None:
        while True:
            await asyncio.sleep(period)
            try:
                await self.index.refresh()
            except Exception as e:
                logger.warning("Background refresh failed: %s", e)

    # --- Collections ---

    @property
    def collections(self) -> list[Collection]:
        return self.active.collections

    @property
    def active_collection(self) -> Collection | None:
        return self.active.active_collection

    async def refresh_collections(self) -> list[Collection]:
        if self.user_id is None:
            return []
        collections = await self._store.list_collections(self.user_id)
        self.active.set_collections(collections)
        return collections

    async def set_active_collection(self, collection_id: int | None) -> None:
        """Select the collection that intents target, or clear the selection."""
        if collection_id is not None:
            collection = self.active.find(collection_id)
            name = collection.name if collection else "Collection"
            self.notifier.info(f"Opening {name}", "Loading your cards...")

        self.active.select(collection_id)
        await self._save_active_id(collection_id)

        if collection_id is not None:
            try:
                await self.index.refresh()
            except Exception as e:
                logger.warning("Refresh after switching collection failed: %s", e)

    async def create_collection(
        self, name: str, language: str = "english", description: str | None = None
    ) -> Collection:
        """
        Create a collection and make it active.

        Raises:
            CollectionLimitError: If the user already has the maximum
        """
        if len(self.active.collections) >= MAX_COLLECTIONS_PER_USER:
            raise CollectionLimitError(
                f"You can have at most {MAX_COLLECTIONS_PER_USER} collections"
            )

        collection = await self._store.create_collection(name, language, description)
        await self.refresh_collections()
        self.active.select(collection.id)
        await self._save_active_id(collection.id)
        return collection

    async def delete_collection(self, collection_id: int) -> None:
        """Delete a collection; clears the selection if it was active."""
        await self._store.delete_collection(collection_id)
        if self.active.active_collection_id == collection_id:
            self.active.select(None)
            await self._save_active_id(None)
        await self.refresh_collections()
        await self.index.refresh()

    # --- Intents ---

    async def add_card(self, card_id: str) -> asyncio.Task[None] | None:
        """Add one copy of a card to the active collection."""
        return await self.engine.request_add(None, card_id)

    async def remove_card(self, card_id: str) -> asyncio.Task[None] | None:
        """Remove one copy of a card from the active collection."""
        return await self.engine.request_remove(None, card_id)

    # --- Read models ---

    def card_quantity(self, card_id: str) -> int:
        """Quantity in the active collection; 0 when nothing is active."""
        active_id = self.active.active_collection_id
        if active_id is None:
            return 0
        return self.index.quantity_of(active_id, card_id)

    def collection_card_ids(self, collection_id: int | None = None) -> list[str]:
        target = self.active.active_collection_id if collection_id is None else collection_id
        if target is None:
            return []
        return collection_card_ids(self.index, target)

    def collection_cards(self) -> list[OwnedCard]:
        active_id = self.active.active_collection_id
        if active_id is None:
            return []
        return collection_view(self.index, self.cache, active_id)

    def all_collection_cards(self) -> list[AggregatedCard]:
        return all_cards_view(self.index, self.cache)

    def collection_stats(self, collection_id: int | None = None) -> CollectionStats:
        """Stats for one collection, or across all when collection_id is None."""
        return collection_stats(self.index, self.cache, collection_id)

    # --- Local persistence ---

    async def _load_active_id(self) -> int | None:
        if self._session_factory is None:
            return self.active.active_collection_id

        async with self._session_factory() as session:
            value = await get_setting(session, ACTIVE_COLLECTION_KEY)

        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning("Ignoring stored active collection id %r", value)
            return None

    async def _save_active_id(self, collection_id: int | None) -> None:
        if self._session_factory is None:
            return

        try:
            async with self._session_factory() as session:
                if collection_id is None:
                    await delete_setting(session, ACTIVE_COLLECTION_KEY)
                else:
                    await set_setting(session, ACTIVE_COLLECTION_KEY, str(collection_id))
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Could not persist active collection: %s", e)

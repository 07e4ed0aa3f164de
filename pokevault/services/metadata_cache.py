"""
Card metadata cache.

Maps card id -> CardMetadataRecord. Populated lazily from the reference
catalog and persisted in the local database so later sessions start warm.
There is no eviction: card ids are content-stable and the catalog is small.

Absence means "not yet fetched", never "does not exist". Views render a
PendingCard placeholder until the background fetch fills the entry.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pokevault.db.operations import cached_card_to_model, load_cached_cards, upsert_cached_card
from pokevault.models.card import CardMetadataRecord, CardView, KnownCard, PendingCard
from pokevault.models.failure import CardMetadataError

logger = logging.getLogger(__name__)

CardListener = Callable[[CardMetadataRecord], None]


class MetadataSource(Protocol):
    async def get_card_metadata(self, card_id: str) -> CardMetadataRecord: ...


class CardMetadataCache:
    """
    Lazily-populated, durably-backed card metadata cache.

    Args:
        source: Reference catalog lookup (e.g. PokemonTCGClient)
        session_factory: Local database sessions. None keeps the cache
            in memory only.
    """

    def __init__(
        self,
        source: MetadataSource,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._source = source
        self._session_factory = session_factory
        self._records: dict[str, CardMetadataRecord] = {}
        self._inflight: dict[str, asyncio.Task[CardMetadataRecord]] = {}
        self._listeners: list[CardListener] = []

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def subscribe(self, listener: CardListener) -> Callable[[], None]:
        """Call listener whenever a card is added. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def load(self) -> int:
        """
        Load every durably cached card into memory.

        Returns:
            Number of cards loaded
        """
        if self._session_factory is None:
            return 0

        async with self._session_factory() as session:
            rows = await load_cached_cards(session)

        for row in rows:
            self._records.setdefault(row.card_id, cached_card_to_model(row))

        logger.info("Loaded %d cached cards", len(rows))
        return len(rows)

    def get(self, card_id: str) -> CardMetadataRecord | None:
        return self._records.get(card_id)

    async def put(self, card_id: str, record: CardMetadataRecord) -> None:
        """Store a record in memory and in the local database."""
        self._records[card_id] = record

        if self._session_factory is not None:
            try:
                async with self._session_factory() as session:
                    await upsert_cached_card(session, record)
                    await session.commit()
            except SQLAlchemyError as e:
                # The in-memory entry still serves this session
                logger.warning("Could not persist card %s: %s", card_id, e)

        for listener in list(self._listeners):
            listener(record)

    def view(self, card_id: str) -> CardView:
        """Known card if cached, otherwise a placeholder. Never fetches."""
        record = self._records.get(card_id)
        if record is None:
            return PendingCard(card_id)
        return KnownCard(record)

    def request(self, card_id: str) -> CardView:
        """
        View a card, starting a background fetch on a miss.

        Failures are logged and leave the placeholder in place; a later
        request retries.
        """
        view = self.view(card_id)
        if isinstance(view, PendingCard):
            self._fetch(card_id)
        return view

    async def ensure(self, card_id: str) -> CardMetadataRecord:
        """
        Return the cached record, fetching and awaiting it on a miss.

        Raises:
            CardMetadataError: If the catalog cannot provide the card
        """
        record = self._records.get(card_id)
        if record is not None:
            return record
        return await asyncio.shield(self._fetch(card_id))

    def pending(self) -> set[str]:
        """Card ids with a fetch in flight."""
        return set(self._inflight)

    async def wait_idle(self) -> None:
        """Wait for every in-flight fetch to settle."""
        while self._inflight:
            await asyncio.gather(*self._inflight.values(), return_exceptions=True)

    def _fetch(self, card_id: str) -> asyncio.Task[CardMetadataRecord]:
        task = self._inflight.get(card_id)
        if task is None:
            task = asyncio.create_task(self._load_from_source(card_id))
            task.add_done_callback(self._log_failure)
            self._inflight[card_id] = task
        return task

    async def _load_from_source(self, card_id: str) -> CardMetadataRecord:
        try:
            record = await self._source.get_card_metadata(card_id)
            await self.put(card_id, record)
            return record
        finally:
            self._inflight.pop(card_id, None)

    @staticmethod
    def _log_failure(task: asyncio.Task[CardMetadataRecord]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, CardMetadataError):
            logger.warning("Card metadata unavailable: %s (%s)", exc.message, exc.detail)
        elif exc is not None:
            logger.error("Card metadata fetch failed: %s", exc)

import asyncio
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pokevault.models.card import CardMetadataRecord
from pokevault.models.collection import Collection, CollectionCardEntry
from pokevault.models.db import Base
from pokevault.models.failure import CardMetadataError, ConflictError, NotFoundError
from pokevault.services.active_collection import ActiveCollectionState
from pokevault.services.collection_index import CollectionCardIndex
from pokevault.services.metadata_cache import CardMetadataCache
from pokevault.services.notifications import Notifier
from pokevault.services.optimistic_engine import OptimisticUpdateEngine

USER_ID = 1


def make_record(card_id: str, name: str | None = None, **extra) -> CardMetadataRecord:
    """Build a card record shaped like a catalog payload."""
    set_id = card_id.split("-")[0]
    payload = {
        "id": card_id,
        "name": name or f"Card {card_id}",
        "number": card_id.split("-")[-1],
        "supertype": "Pokémon",
        "rarity": "Rare Holo",
        "images": {
            "small": f"https://images.pokemontcg.io/{set_id}/{card_id}.png",
            "large": f"https://images.pokemontcg.io/{set_id}/{card_id}_hires.png",
        },
        "set": {"id": set_id, "name": "Base", "series": "Base", "printedTotal": 102, "total": 102},
    }
    payload.update(extra)
    return CardMetadataRecord.model_validate(payload)


class FakeCardStore:
    """
    In-memory CardStore with the server's semantics.

    Set `gate` to an unset asyncio.Event to hold writes in flight until it
    is set. Queue exceptions in `failures[method]` to fail the next call.
    """

    def __init__(self, collections: list[Collection] | None = None) -> None:
        self.collections: dict[int, Collection] = {c.id: c for c in collections or []}
        self.rows: dict[tuple[int, str], CollectionCardEntry] = {}
        self.calls: list[tuple] = []
        self.failures: dict[str, list[Exception]] = {}
        self.gate: asyncio.Event | None = None
        self._next_id = 1

    def seed(self, collection_id: int, card_id: str, quantity: int) -> None:
        self.rows[(collection_id, card_id)] = CollectionCardEntry(
            collection_id=collection_id,
            card_id=card_id,
            quantity=quantity,
            updated_at=datetime.now(UTC),
            id=self._allocate_id(),
        )

    def quantity(self, collection_id: int, card_id: str) -> int:
        row = self.rows.get((collection_id, card_id))
        return row.quantity if row else 0

    def writes(self) -> list[tuple]:
        return [c for c in self.calls if c[0] != "list_entries" and c[0] != "list_collections"]

    def _allocate_id(self) -> int:
        self._next_id += 1
        return self._next_id

    async def _enter(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if method not in ("list_entries", "list_collections") and self.gate is not None:
            await self.gate.wait()
        queued = self.failures.get(method)
        if queued:
            raise queued.pop(0)

    async def list_entries(self, user_id: int) -> list[CollectionCardEntry]:
        await self._enter("list_entries", user_id)
        owned = {c.id for c in self.collections.values() if c.user_id == user_id}
        return [row for key, row in self.rows.items() if key[0] in owned]

    async def create_entry(
        self, collection_id: int, card_id: str, quantity: int
    ) -> CollectionCardEntry:
        await self._enter("create_entry", collection_id, card_id, quantity)
        if (collection_id, card_id) in self.rows:
            raise ConflictError("Card already in collection", status_code=409)
        self.seed(collection_id, card_id, quantity)
        return self.rows[(collection_id, card_id)]

    async def update_quantity(
        self, collection_id: int, card_id: str, quantity: int
    ) -> CollectionCardEntry:
        await self._enter("update_quantity", collection_id, card_id, quantity)
        row = self.rows.get((collection_id, card_id))
        if row is None:
            raise NotFoundError("Card not found in collection", status_code=404)
        updated = CollectionCardEntry(
            collection_id=collection_id,
            card_id=card_id,
            quantity=max(1, quantity),
            updated_at=datetime.now(UTC),
            id=row.id,
        )
        self.rows[(collection_id, card_id)] = updated
        return updated

    async def delete_entry(self, collection_id: int, card_id: str) -> None:
        await self._enter("delete_entry", collection_id, card_id)
        if self.rows.pop((collection_id, card_id), None) is None:
            raise NotFoundError("Card not found in this collection", status_code=404)

    async def list_collections(self, user_id: int) -> list[Collection]:
        await self._enter("list_collections", user_id)
        return [c for c in self.collections.values() if c.user_id == user_id]

    async def create_collection(
        self, name: str, language: str = "english", description: str | None = None
    ) -> Collection:
        await self._enter("create_collection", name)
        collection = Collection(
            id=max(self.collections, default=0) + 1,
            name=name,
            user_id=USER_ID,
            language=language,
            description=description,
        )
        self.collections[collection.id] = collection
        return collection

    async def delete_collection(self, collection_id: int) -> None:
        await self._enter("delete_collection", collection_id)
        if self.collections.pop(collection_id, None) is None:
            raise NotFoundError("Collection not found", status_code=404)
        self.rows = {k: v for k, v in self.rows.items() if k[0] != collection_id}


class FakeCatalog:
    """
    Reference catalog returning canned records.

    Set `gate` to an unset asyncio.Event to hold lookups until it is set.
    """

    def __init__(self, records: list[CardMetadataRecord] | None = None) -> None:
        self.records = {r.id: r for r in records or []}
        self.requests: list[str] = []
        self.unavailable: set[str] = set()
        self.gate: asyncio.Event | None = None

    async def get_card_metadata(self, card_id: str) -> CardMetadataRecord:
        self.requests.append(card_id)
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if card_id in self.unavailable or card_id not in self.records:
            raise CardMetadataError(f"Could not load card {card_id}", detail="API Error: 404")
        return self.records[card_id]


@pytest.fixture
def collections() -> list[Collection]:
    return [
        Collection(id=7, name="Binder", user_id=USER_ID),
        Collection(id=8, name="Trade Pile", user_id=USER_ID),
        Collection(id=99, name="Someone Else", user_id=2),
    ]


@pytest.fixture
def store(collections: list[Collection]) -> FakeCardStore:
    return FakeCardStore(collections)


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog(
        [
            make_record("base1-4", "Charizard"),
            make_record("base1-2", "Blastoise"),
            make_record("base1-15", "Venusaur", rarity="Rare Holo", supertype="Pokémon"),
            make_record("base1-92", "Energy Removal", rarity="Common", supertype="Trainer"),
        ]
    )


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def active(collections: list[Collection]) -> ActiveCollectionState:
    state = ActiveCollectionState()
    state.set_collections([c for c in collections if c.user_id == USER_ID])
    state.select(7)
    return state


@pytest.fixture
def index(store: FakeCardStore) -> CollectionCardIndex:
    return CollectionCardIndex(store, user_id=USER_ID)


@pytest.fixture
def cache(catalog: FakeCatalog) -> CardMetadataCache:
    return CardMetadataCache(catalog)


@pytest.fixture
def engine(
    index: CollectionCardIndex,
    cache: CardMetadataCache,
    store: FakeCardStore,
    notifier: Notifier,
    active: ActiveCollectionState,
) -> OptimisticUpdateEngine:
    return OptimisticUpdateEngine(index, cache, store, notifier, active, grace_seconds=0)


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session

"""
Database CRUD operations.

Provides async functions for reading and writing cached card metadata and
local settings.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pokevault.models.card import CardMetadataRecord
from pokevault.models.db import CachedCardDB, LocalSettingDB

ACTIVE_COLLECTION_KEY = "active_collection_id"

# --- Card Metadata Operations ---


async def get_cached_card(session: AsyncSession, card_id: str) -> CachedCardDB | None:
    """
    Get a cached card by id.

    Returns None if the card has never been fetched.
    """
    result = await session.execute(select(CachedCardDB).where(CachedCardDB.card_id == card_id))
    return result.scalar_one_or_none()


async def load_cached_cards(session: AsyncSession) -> list[CachedCardDB]:
    """Get every cached card."""
    result = await session.execute(select(CachedCardDB))
    return list(result.scalars().all())


async def upsert_cached_card(session: AsyncSession, record: CardMetadataRecord) -> CachedCardDB:
    """
    Insert or replace the cached metadata for a card.

    If the card is already cached, overwrites its payload.
    """
    payload = record.model_dump(mode="json", by_alias=True)
    existing = await get_cached_card(session, record.id)

    if existing:
        existing.name = record.name
        existing.payload = payload
        await session.flush()
        return existing

    row = CachedCardDB(card_id=record.id, name=record.name, payload=payload)
    session.add(row)
    await session.flush()
    return row


def cached_card_to_model(row: CachedCardDB) -> CardMetadataRecord:
    """Convert a cached row to a domain model."""
    return CardMetadataRecord.model_validate(row.payload)


# --- Local Setting Operations ---


async def get_setting(session: AsyncSession, key: str) -> str | None:
    """Get a setting value, or None if unset."""
    result = await session.execute(select(LocalSettingDB).where(LocalSettingDB.key == key))
    row = result.scalar_one_or_none()
    return row.value if row else None


async def set_setting(session: AsyncSession, key: str, value: str) -> LocalSettingDB:
    """Insert or update a setting."""
    result = await session.execute(select(LocalSettingDB).where(LocalSettingDB.key == key))
    row = result.scalar_one_or_none()

    if row:
        row.value = value
    else:
        row = LocalSettingDB(key=key, value=value)
        session.add(row)

    await session.flush()
    return row


async def delete_setting(session: AsyncSession, key: str) -> bool:
    """
    Delete a setting.

    Returns True if deleted, False if not found.
    """
    result = await session.execute(delete(LocalSettingDB).where(LocalSettingDB.key == key))
    # rowcount is available on DELETE results; type stubs incomplete for async
    return bool(result.rowcount)  # type: ignore[attr-defined]

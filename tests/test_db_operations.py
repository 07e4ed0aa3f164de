"""Tests for database CRUD operations."""

from sqlalchemy.ext.asyncio import AsyncSession

from pokevault.db.operations import (
    ACTIVE_COLLECTION_KEY,
    cached_card_to_model,
    delete_setting,
    get_cached_card,
    get_setting,
    load_cached_cards,
    set_setting,
    upsert_cached_card,
)
from tests.conftest import make_record


class TestCachedCardOperations:
    async def test_upsert_new_card(self, session: AsyncSession) -> None:
        """Can cache a card the first time it is fetched."""
        row = await upsert_cached_card(session, make_record("base1-4", "Charizard"))

        assert row.card_id == "base1-4"
        assert row.name == "Charizard"
        assert row.payload["set"]["printedTotal"] == 102

    async def test_get_cached_card(self, session: AsyncSession) -> None:
        """Can retrieve a cached card."""
        await upsert_cached_card(session, make_record("base1-4", "Charizard"))
        await session.commit()

        row = await get_cached_card(session, "base1-4")

        assert row is not None
        assert row.name == "Charizard"

    async def test_get_cached_card_not_found(self, session: AsyncSession) -> None:
        """Returns None for a card never fetched."""
        assert await get_cached_card(session, "base1-999") is None

    async def test_upsert_overwrites_payload(self, session: AsyncSession) -> None:
        """Caching an existing card replaces its payload."""
        await upsert_cached_card(session, make_record("base1-4", "Charizard"))
        await session.commit()

        await upsert_cached_card(session, make_record("base1-4", "Charizard", hp="120"))
        await session.commit()

        rows = await load_cached_cards(session)
        assert len(rows) == 1
        assert rows[0].payload["hp"] == "120"

    async def test_load_cached_cards(self, session: AsyncSession) -> None:
        await upsert_cached_card(session, make_record("base1-4", "Charizard"))
        await upsert_cached_card(session, make_record("base1-2", "Blastoise"))
        await session.commit()

        rows = await load_cached_cards(session)

        assert {row.card_id for row in rows} == {"base1-4", "base1-2"}

    async def test_row_converts_back_to_record(self, session: AsyncSession) -> None:
        """Cached payload parses into an equal record."""
        record = make_record(
            "base1-4",
            "Charizard",
            hp="120",
            types=["Fire"],
            attacks=[{"name": "Fire Spin", "cost": ["Fire"] * 4, "damage": "100"}],
            tcgplayer={"url": "https://prices.pokemontcg.io/tcgplayer/base1-4"},
        )
        row = await upsert_cached_card(session, record)

        restored = cached_card_to_model(row)

        assert restored == record
        assert restored.set_id == "base1"
        assert restored.attacks[0].damage == "100"


class TestLocalSettingOperations:
    async def test_get_unset(self, session: AsyncSession) -> None:
        """Returns None for a setting never written."""
        assert await get_setting(session, ACTIVE_COLLECTION_KEY) is None

    async def test_set_and_get(self, session: AsyncSession) -> None:
        await set_setting(session, ACTIVE_COLLECTION_KEY, "7")
        await session.commit()

        assert await get_setting(session, ACTIVE_COLLECTION_KEY) == "7"

    async def test_set_overwrites(self, session: AsyncSession) -> None:
        await set_setting(session, ACTIVE_COLLECTION_KEY, "7")
        await set_setting(session, ACTIVE_COLLECTION_KEY, "8")
        await session.commit()

        assert await get_setting(session, ACTIVE_COLLECTION_KEY) == "8"

    async def test_delete_setting(self, session: AsyncSession) -> None:
        """Can delete a setting."""
        await set_setting(session, ACTIVE_COLLECTION_KEY, "7")
        await session.commit()

        deleted = await delete_setting(session, ACTIVE_COLLECTION_KEY)
        await session.commit()

        assert deleted is True
        assert await get_setting(session, ACTIVE_COLLECTION_KEY) is None

    async def test_delete_setting_not_found(self, session: AsyncSession) -> None:
        """Returns False when deleting an unset key."""
        assert await delete_setting(session, "missing") is False

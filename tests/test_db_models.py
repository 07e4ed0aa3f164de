"""Tests for SQLAlchemy ORM models."""

from unittest.mock import patch

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from pokevault.db.database import init_db
from pokevault.models.db import CachedCardDB, LocalSettingDB


class TestCachedCardDB:
    async def test_create_cached_card(self, session: AsyncSession) -> None:
        row = CachedCardDB(card_id="base1-4", name="Charizard", payload={"id": "base1-4"})
        session.add(row)
        await session.commit()

        result = await session.execute(select(CachedCardDB))
        stored = result.scalar_one()

        assert stored.card_id == "base1-4"
        assert stored.payload == {"id": "base1-4"}
        assert stored.fetched_at is not None

    def test_repr(self) -> None:
        row = CachedCardDB(card_id="base1-4", name="Charizard")

        assert repr(row) == "<CachedCardDB(card_id=base1-4, name=Charizard)>"


class TestLocalSettingDB:
    async def test_create_setting(self, session: AsyncSession) -> None:
        session.add(LocalSettingDB(key="active_collection_id", value="7"))
        await session.commit()

        result = await session.execute(
            select(LocalSettingDB).where(LocalSettingDB.key == "active_collection_id")
        )
        stored = result.scalar_one()

        assert stored.value == "7"
        assert stored.updated_at is not None


class TestInitDb:
    async def test_creates_tables(self) -> None:
        """init_db creates every cache table on the configured engine."""
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

        with patch("pokevault.db.database.engine", engine):
            await init_db()

        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        await engine.dispose()

        assert set(tables) == {"cached_cards", "local_settings"}

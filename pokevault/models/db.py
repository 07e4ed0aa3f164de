"""
SQLAlchemy ORM models for local durable storage.

The local database survives between sessions so card metadata is not
re-fetched and the last active collection is restored on start.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CachedCardDB(Base):
    """
    Card metadata fetched from the reference catalog.

    Keyed by card id; card ids never change meaning, so rows are kept
    indefinitely.
    """

    __tablename__ = "cached_cards"

    card_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<CachedCardDB(card_id={self.card_id}, name={self.name})>"


class LocalSettingDB(Base):
    """Small key/value preferences, such as the active collection id."""

    __tablename__ = "local_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<LocalSettingDB(key={self.key}, value={self.value})>"

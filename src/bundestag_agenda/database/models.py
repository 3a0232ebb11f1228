"""SQLAlchemy models backing the key-value store and the response cache."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, LargeBinary, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative SQLAlchemy base class."""


class KeyValueEntry(Base):
    """One key of the agenda store (a week partition or the cache-key index)."""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


class CachedResponseEntry(Base):
    """A rendered HTTP response stored until ``expires_at`` (epoch seconds)."""

    __tablename__ = "response_cache"

    key: Mapped[str] = mapped_column(String(2048), primary_key=True)
    body: Mapped[bytes] = mapped_column(LargeBinary)
    media_type: Mapped[str] = mapped_column(String(128))
    max_age: Mapped[int] = mapped_column(Integer)
    expires_at: Mapped[float] = mapped_column(Float, index=True)


__all__ = ["Base", "CachedResponseEntry", "KeyValueEntry"]

"""Time-bounded storage for rendered HTTP responses."""
from __future__ import annotations

import asyncio
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Protocol

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..database.models import Base, CachedResponseEntry

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class CachedResponse:
    """A rendered response body together with its content type and lifetime."""

    body: bytes
    media_type: str
    max_age: int
    expires_at: float


class ResponseCache(Protocol):
    """Contract of the edge cache: no key enumeration is available."""

    async def get(self, key: str) -> Optional[CachedResponse]: ...

    async def put(self, key: str, body: bytes, media_type: str, max_age: int) -> CachedResponse: ...

    async def delete(self, key: str) -> None: ...


class MemoryResponseCache:
    """Process-local cache honouring expiry times."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: Dict[str, CachedResponse] = {}

    async def get(self, key: str) -> Optional[CachedResponse]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return entry

    async def put(self, key: str, body: bytes, media_type: str, max_age: int) -> CachedResponse:
        entry = CachedResponse(body, media_type, max_age, self._clock() + max_age)
        self._entries[key] = entry
        return entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class SQLResponseCache:
    """Cache table in the same database as the agenda store."""

    def __init__(self, engine: Engine, clock: Clock = time.time) -> None:
        self._engine = engine
        self._clock = clock
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        Base.metadata.create_all(engine, tables=[CachedResponseEntry.__table__])

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def get(self, key: str) -> Optional[CachedResponse]:
        return await asyncio.to_thread(self._get, key)

    async def put(self, key: str, body: bytes, media_type: str, max_age: int) -> CachedResponse:
        return await asyncio.to_thread(self._put, key, body, media_type, max_age)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    def _get(self, key: str) -> Optional[CachedResponse]:
        with self.session() as session:
            entry = session.get(CachedResponseEntry, key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                session.delete(entry)
                return None
            return CachedResponse(entry.body, entry.media_type, entry.max_age, entry.expires_at)

    def _put(self, key: str, body: bytes, media_type: str, max_age: int) -> CachedResponse:
        expires_at = self._clock() + max_age
        with self.session() as session:
            entry = session.get(CachedResponseEntry, key)
            if entry is None:
                entry = CachedResponseEntry(key=key)
                session.add(entry)
            entry.body = body
            entry.media_type = media_type
            entry.max_age = max_age
            entry.expires_at = expires_at
        return CachedResponse(body, media_type, max_age, expires_at)

    def _delete(self, key: str) -> None:
        with self.session() as session:
            session.execute(delete(CachedResponseEntry).where(CachedResponseEntry.key == key))


__all__ = ["CachedResponse", "MemoryResponseCache", "ResponseCache", "SQLResponseCache"]

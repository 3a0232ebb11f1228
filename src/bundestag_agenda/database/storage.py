"""Key-value persistence with a get/put/delete/list contract.

The agenda service only needs a flat string store. :class:`SQLKeyValueStore`
keeps it in a relational database through SQLAlchemy; blocking database
calls run in a worker thread so the event loop is never held up.
:class:`MemoryKeyValueStore` is the in-process stand-in.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol

from sqlalchemy import create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base, KeyValueEntry


class KeyValueStore(Protocol):
    """Contract of the external key-value store."""

    async def get(self, key: str) -> Optional[str]: ...

    async def put(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def list(self, prefix: str = "") -> List[str]: ...


class SQLKeyValueStore:
    """Wrapper around SQLAlchemy storing string values by key."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @property
    def engine(self) -> Engine:
        return self._engine

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

    def ensure_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    def dispose(self) -> None:
        """Dispose the underlying SQLAlchemy engine."""

        self._engine.dispose()

    # --- async contract --------------------------------------------------
    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get, key)

    async def put(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._put, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def list(self, prefix: str = "") -> List[str]:
        return await asyncio.to_thread(self._list, prefix)

    # --- blocking implementation -----------------------------------------
    def _get(self, key: str) -> Optional[str]:
        with self.session() as session:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    def _put(self, key: str, value: str) -> None:
        with self.session() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value

    def _delete(self, key: str) -> None:
        with self.session() as session:
            session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))

    def _list(self, prefix: str) -> List[str]:
        with self.session() as session:
            stmt = select(KeyValueEntry.key).order_by(KeyValueEntry.key)
            if prefix:
                stmt = stmt.where(KeyValueEntry.key.startswith(prefix, autoescape=True))
            return list(session.scalars(stmt))


class MemoryKeyValueStore:
    """Dictionary backed store for tests and throwaway deployments."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def put(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def list(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self.data if key.startswith(prefix))


def create_engine_for(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine that may be used from worker threads."""

    kwargs: Dict[str, object] = {"echo": echo, "future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def create_storage(database_url: str, *, echo: bool = False) -> SQLKeyValueStore:
    storage = SQLKeyValueStore(create_engine_for(database_url, echo=echo))
    storage.ensure_schema()
    return storage


__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLKeyValueStore",
    "create_engine_for",
    "create_storage",
]

"""Durable key → string backends for the goal store.

Backends only know opaque string keys and string payloads; composite keys and
value encoding live in `store.py`. Every backend failure surfaces as
`StorageError` so the store can degrade in one place.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

_LOGGER = logging.getLogger(__name__)


class StorageError(Exception):
    """Backend read/write failed (quota exceeded, connection lost, corruption)."""


class StorageBackend(Protocol):
    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...

    async def keys(self, prefix: str = "") -> list[str]: ...


class MemoryBackend:
    """In-process backend. `capacity` caps the number of keys to mimic a storage quota."""

    def __init__(self, capacity: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self._capacity = capacity

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        if self._capacity is not None and key not in self._items and len(self._items) >= self._capacity:
            raise StorageError(f"Storage quota exceeded ({self._capacity} items)")
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._items if k.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._items)


class SqlBackend:
    """Single-table backend on an async SQLAlchemy engine (SQLite by default).

    Upserts are one `INSERT ... ON CONFLICT` statement per write, so a write is
    atomic without extra locking on the database side.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def create_schema(self) -> None:
        try:
            async with self._sessionmaker() as session:
                await session.execute(
                    text(
                        "CREATE TABLE IF NOT EXISTS meta_values ("
                        "key TEXT PRIMARY KEY, "
                        "value TEXT NOT NULL)"
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not create meta_values table: {exc}") from exc

    async def get_item(self, key: str) -> str | None:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    text("SELECT value FROM meta_values WHERE key = :key"),
                    {"key": key},
                )
                row = result.fetchone()
        except SQLAlchemyError as exc:
            raise StorageError(f"Read failed for {key!r}: {exc}") from exc
        if row is None:
            return None
        return row[0]

    async def set_item(self, key: str, value: str) -> None:
        try:
            async with self._sessionmaker() as session:
                await session.execute(
                    text(
                        "INSERT INTO meta_values (key, value) VALUES (:key, :value) "
                        "ON CONFLICT (key) DO UPDATE SET value = excluded.value"
                    ),
                    {"key": key, "value": value},
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Write failed for {key!r}: {exc}") from exc

    async def remove_item(self, key: str) -> None:
        try:
            async with self._sessionmaker() as session:
                await session.execute(text("DELETE FROM meta_values WHERE key = :key"), {"key": key})
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Delete failed for {key!r}: {exc}") from exc

    async def keys(self, prefix: str = "") -> list[str]:
        # substr comparison instead of LIKE: keys contain '_' and '%'
        query = "SELECT key FROM meta_values"
        params: dict[str, str | int] = {}
        if prefix:
            query += " WHERE substr(key, 1, :prefix_len) = :prefix"
            params = {"prefix": prefix, "prefix_len": len(prefix)}
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(text(query), params)
                rows = result.fetchall()
        except SQLAlchemyError as exc:
            raise StorageError(f"Key listing failed for prefix {prefix!r}: {exc}") from exc
        _LOGGER.debug("Listed %d keys for prefix %r", len(rows), prefix)
        return [r[0] for r in rows]

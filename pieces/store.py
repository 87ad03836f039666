"""
Per-trigger key/value stores.

A store is scoped to exactly one trigger instance.  Keys are fixed string
constants chosen by each trigger; values are any JSON-serialisable shape.
Writing ``None`` clears the key.

Two implementations:
  • InMemoryStore   — dict-backed, used in tests and one-off runs
  • DatabaseStore   — SQLAlchemy ``store_entries`` table, used by the host
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import StoreEntry

logger = logging.getLogger(__name__)


class Store(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or ``None`` if the key was never set / cleared."""
        ...

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        ...


class InMemoryStore(Store):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        # Copies keep callers from mutating what a later get() returns,
        # matching the JSON round-trip of DatabaseStore.
        return copy.deepcopy(self._data.get(key))

    async def put(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = copy.deepcopy(value)

    def keys(self) -> list[str]:
        return list(self._data.keys())


class DatabaseStore(Store):
    """Store rows in ``store_entries`` keyed by (instance_id, key)."""

    def __init__(
        self,
        instance_id: str,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.instance_id = instance_id
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[Any]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StoreEntry.value).where(
                    StoreEntry.instance_id == self.instance_id,
                    StoreEntry.key == key,
                )
            )
            return result.scalar_one_or_none()

    async def put(self, key: str, value: Any) -> None:
        async with self._session_factory() as session:
            if value is None:
                await session.execute(
                    delete(StoreEntry).where(
                        StoreEntry.instance_id == self.instance_id,
                        StoreEntry.key == key,
                    )
                )
                await session.commit()
                logger.debug("Cleared store key %s for instance %s", key, self.instance_id)
                return

            result = await session.execute(
                select(StoreEntry).where(
                    StoreEntry.instance_id == self.instance_id,
                    StoreEntry.key == key,
                )
            )
            entry = result.scalar_one_or_none()
            if entry:
                entry.value = value
                entry.updated_at = datetime.now(timezone.utc)
            else:
                session.add(StoreEntry(instance_id=self.instance_id, key=key, value=value))
            await session.commit()

    async def clear_all(self) -> int:
        """Delete every key of this instance; returns the number of rows removed."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(StoreEntry).where(StoreEntry.instance_id == self.instance_id)
            )
            await session.commit()
            return result.rowcount or 0

"""Per-character locking for dungeon operations."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple

__all__ = ["CharacterLocks"]


class CharacterLocks:
    """Hand out one :class:`asyncio.Lock` per character id.

    Operations on the same character run one after another while different
    characters proceed independently. The internal mapping itself is guarded
    by a separate lock so concurrent first requests share a single lock.
    """

    __slots__ = ("_locks", "_lock")

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock = asyncio.Lock()

    async def get(self, character_id: str) -> asyncio.Lock:
        """Return the lock for ``character_id``, creating it on first use."""

        async with self._lock:
            key = str(character_id)
            lock = self._locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[key] = lock
            return lock

    @asynccontextmanager
    async def hold(self, character_id: str) -> AsyncIterator[None]:
        lock = await self.get(character_id)
        async with lock:
            yield

    async def discard(self, character_id: str) -> bool:
        """Forget the lock for ``character_id`` unless it is currently held."""

        async with self._lock:
            key = str(character_id)
            lock = self._locks.get(key)
            if lock is None or lock.locked():
                return False
            del self._locks[key]
            return True

    async def keys(self) -> Tuple[str, ...]:
        async with self._lock:
            return tuple(self._locks.keys())

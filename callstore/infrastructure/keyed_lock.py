"""Keyed Lock — one asyncio.Lock per live key, discarded when nobody holds or waits on it.

Invariants:
    - Holders of the same key run strictly one at a time (FIFO, asyncio.Lock semantics)
    - Holders of different keys never wait on each other
    - A key's lock is removed once its holder/waiter count drops to zero,
      so memory tracks in-flight keys only

Design Decisions:
    - Per-key dict over a fixed shard array: sharding would make unrelated
      sessions contend whenever their keys hash to the same shard
    - Bookkeeping happens between awaits, so the event loop gives it atomicity
      without a guard lock
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator


class KeyedLock:
    """Mutual exclusion scoped to a string key."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncGenerator[None, None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

    def is_held(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

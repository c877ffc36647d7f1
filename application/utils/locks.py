"""
Per-key asyncio locks.

Serializes read-modify-write sequences on the same payment id across request
handlers and background processing tasks. Single event loop only.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLock:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                # nobody holds or waits: drop the entry so the map stays small
                del self._holders[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)

import json
import time
from collections.abc import Callable
from typing import Any


class MemoryCacheStore:
    """Process-local cache store.

    Values are kept as JSON text so a read never aliases the caller's object,
    matching the behaviour of a remote key-value store.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[str, float | None]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        payload, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return json.loads(payload)

    async def put(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._entries[key] = (json.dumps(value), expires_at)

    async def add(self, key: str, value: Any, ttl_seconds: int | None = None) -> Any:
        # get and put never yield, so this is atomic within the event loop
        existing = await self.get(key)
        if existing is not None:
            return existing
        await self.put(key, value, ttl_seconds)
        return value

    def __len__(self) -> int:
        return len(self._entries)

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    async def get(self, key: str) -> Any | None:
        """Return the JSON value stored under key, or None on a miss or expiry."""
        ...

    async def put(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a JSON-serializable value. ``ttl_seconds=None`` never expires."""
        ...

    async def add(self, key: str, value: Any, ttl_seconds: int | None = None) -> Any:
        """Store value only if key is absent. Returns whichever value is stored afterwards."""
        ...

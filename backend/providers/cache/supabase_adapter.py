import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any, cast

import structlog
from supabase import Client

logger = structlog.get_logger()


class SupabaseCacheStore:
    """Cache store backed by a Postgres table through Supabase.

    Expected table:

        CREATE TABLE menu_cache (
            key text PRIMARY KEY,
            value jsonb NOT NULL,
            expires_at timestamptz
        );

    A NULL ``expires_at`` never expires. Expired rows are treated as misses and
    overwritten on the next put.
    """

    def __init__(self, db: Client, table: str = "menu_cache"):
        self._db = db
        self._table = table

    async def get(self, key: str) -> Any | None:
        def _sync_get() -> list[dict[str, Any]]:
            response = (
                self._db.table(self._table)
                .select("value, expires_at")
                .eq("key", key)
                .limit(1)
                .execute()
            )
            return cast("list[dict[str, Any]]", response.data)

        rows = await asyncio.to_thread(_sync_get)
        if not rows:
            return None

        row = rows[0]
        expires_at = row.get("expires_at")
        if expires_at and datetime.fromisoformat(expires_at) <= datetime.now(UTC):
            return None
        return row.get("value")

    async def put(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        expires_at = (
            (datetime.now(UTC) + timedelta(seconds=ttl_seconds)).isoformat()
            if ttl_seconds is not None
            else None
        )

        def _sync_put() -> None:
            self._db.table(self._table).upsert(
                {"key": key, "value": value, "expires_at": expires_at}
            ).execute()

        await asyncio.to_thread(_sync_put)
        logger.debug("Cache entry written", key=key, ttl_seconds=ttl_seconds)

    async def add(self, key: str, value: Any, ttl_seconds: int | None = None) -> Any:
        """Insert unless the key exists (ON CONFLICT DO NOTHING), then read back the winner.

        An expired row still counts as present; only never-expiring keys use this.
        """
        expires_at = (
            (datetime.now(UTC) + timedelta(seconds=ttl_seconds)).isoformat()
            if ttl_seconds is not None
            else None
        )

        def _sync_add() -> None:
            self._db.table(self._table).upsert(
                {"key": key, "value": value, "expires_at": expires_at},
                on_conflict="key",
                ignore_duplicates=True,
            ).execute()

        await asyncio.to_thread(_sync_add)
        stored = await self.get(key)
        return value if stored is None else stored

import asyncio
import re

import structlog

from core.config import settings
from models.types import DayMenu, MenuItem, SpicyStatus
from parsers.ingredients import flatten_ingredients
from providers.cache.interface import CacheStore
from providers.llm.interface import LLMProvider
from services.menu_service import MenuService

logger = structlog.get_logger()

_SPICY_TRUE_RE = re.compile(r"\"?spicy\"?\s*:\s*\"?true\b", re.IGNORECASE)
_SPICY_FALSE_RE = re.compile(r"\"?spicy\"?\s*:\s*\"?false\b", re.IGNORECASE)


def spicy_cache_key(item_id: str) -> str:
    return f"spicy:{item_id}"


def parse_spicy_reply(text: str) -> bool:
    """Read a ``{"spicy": true|false}`` verdict out of free-form model output.

    Raises ValueError when the reply carries neither verdict.
    """
    if _SPICY_TRUE_RE.search(text):
        return True
    if _SPICY_FALSE_RE.search(text):
        return False
    raise ValueError(f"No spicy verdict in reply: {text[:80]!r}")


class SpicyEnrichmentService:
    """Marks menu items spicy or not, caching each verdict permanently.

    A verdict is written once per item id and never revisited. Items whose
    label page lists no ingredients are recorded as not spicy without asking
    the model; model or network failures leave the item unknown so a later
    run retries it.
    """

    def __init__(
        self,
        cache: CacheStore,
        menu_service: MenuService,
        llm: LLMProvider,
        batch_size: int | None = None,
        llm_timeout_seconds: float | None = None,
    ):
        self._cache = cache
        self._menus = menu_service
        self._llm = llm
        self._batch_size = batch_size or settings.spicy_batch_size
        self._llm_timeout = llm_timeout_seconds or settings.llm_timeout_seconds
        self._inflight: dict[str, asyncio.Future[bool | None]] = {}

    async def get_cached_verdict(self, item_id: str) -> bool | None:
        cached = await self._cache.get(spicy_cache_key(item_id))
        if cached is None:
            return None
        return bool(cached)

    async def cache_verdict(self, item_id: str, spicy: bool) -> bool:
        """Record a verdict unless one already exists; returns the verdict that is kept."""
        stored = await self._cache.add(spicy_cache_key(item_id), spicy, ttl_seconds=None)
        return bool(stored)

    async def enrich_menu(self, menu: DayMenu) -> None:
        """Fill in ``is_spicy`` for unknown items and re-save the menu if any changed.

        Items sharing an id (one recipe served at several meals) get one verdict.
        """
        pending: dict[str, list[MenuItem]] = {}
        for item in menu.all_items():
            if item.is_spicy == SpicyStatus.UNKNOWN:
                pending.setdefault(item.id, []).append(item)
        if not pending:
            return

        resolved = 0

        def apply(item_id: str, verdict: bool) -> None:
            nonlocal resolved
            for item in pending[item_id]:
                item.is_spicy = SpicyStatus.from_bool(verdict)
                resolved += 1

        cached = await asyncio.gather(*(self.get_cached_verdict(item_id) for item_id in pending))
        unclassified: list[MenuItem] = []
        for (item_id, items), verdict in zip(pending.items(), cached, strict=True):
            if verdict is None:
                unclassified.append(items[0])
            else:
                apply(item_id, verdict)

        for start in range(0, len(unclassified), self._batch_size):
            batch = unclassified[start : start + self._batch_size]
            verdicts = await asyncio.gather(*(self._classify_once(item) for item in batch))
            for item, verdict in zip(batch, verdicts, strict=True):
                if verdict is not None:
                    apply(item.id, verdict)

        if resolved:
            await self._menus.save_menu(menu)

        logger.info(
            "Spicy enrichment finished",
            location_id=menu.location_id,
            date=menu.date.isoformat(),
            pending=sum(len(items) for items in pending.values()),
            resolved=resolved,
        )

    async def _classify_once(self, item: MenuItem) -> bool | None:
        """Share one classification per item id across concurrent menus."""
        task = self._inflight.get(item.id)
        if task is None:
            task = asyncio.ensure_future(self._classify_item(item))
            self._inflight[item.id] = task
            task.add_done_callback(lambda _: self._inflight.pop(item.id, None))
        return await asyncio.shield(task)

    async def _classify_item(self, item: MenuItem) -> bool | None:
        try:
            # Another worker may have finished this id since the batch lookup.
            cached = await self.get_cached_verdict(item.id)
            if cached is not None:
                return cached

            detail = await self._menus.get_food_detail(item.id, item.label_url)
            if detail is None:
                logger.warning("No label page for item", item_id=item.id)
                return None

            ingredients = flatten_ingredients(detail.ingredients)
            if not ingredients.strip():
                return await self.cache_verdict(item.id, False)

            reply = await asyncio.wait_for(
                self._llm.classify_spicy(item.name, ingredients),
                timeout=self._llm_timeout,
            )
            return await self.cache_verdict(item.id, parse_spicy_reply(reply))
        except Exception as e:
            logger.warning(
                "Spicy classification failed",
                item_id=item.id,
                name=item.name,
                error=str(e) or type(e).__name__,
            )
            return None

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, TypeVar

import structlog

from core.config import settings
from core.timezone import shift_days, today_local
from models.types import LOCATIONS, DateBounds, DayMenu, FoodDetail, Location
from parsers.label_page import parse_label_page
from parsers.short_menu import parse_short_menu
from providers.cache.interface import CacheStore
from providers.vendor.interface import VendorProvider

logger = structlog.get_logger()

T = TypeVar("T")


def menu_cache_key(location_id: str, menu_date: date) -> str:
    return f"menu:{location_id}:{menu_date.isoformat()}"


def food_cache_key(item_id: str) -> str:
    return f"food:{item_id}"


def date_bounds_cache_key(location_id: str) -> str:
    return f"datebounds:{location_id}"


class MenuService:
    """Serves menus and label details from cache, scraping FoodPro on a miss."""

    def __init__(
        self,
        cache: CacheStore,
        vendor: VendorProvider,
        menu_ttl_seconds: int | None = None,
        food_ttl_seconds: int | None = None,
        date_bounds_ttl_seconds: int | None = None,
        scan_days: int | None = None,
        empty_streak_limit: int | None = None,
        today: Callable[[], date] = today_local,
    ):
        self._cache = cache
        self._vendor = vendor
        self._menu_ttl = menu_ttl_seconds or settings.menu_cache_ttl_seconds
        self._food_ttl = food_ttl_seconds or settings.food_cache_ttl_seconds
        self._bounds_ttl = date_bounds_ttl_seconds or settings.date_bounds_cache_ttl_seconds
        self._scan_days = scan_days or settings.date_bounds_scan_days
        self._empty_streak_limit = empty_streak_limit or settings.date_bounds_empty_streak
        self._today = today
        # Concurrent misses on one key share a single scrape.
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    @property
    def menu_ttl_seconds(self) -> int:
        return self._menu_ttl

    def get_locations(self) -> list[Location]:
        return list(LOCATIONS)

    def get_location(self, location_id: str) -> Location | None:
        return next((loc for loc in LOCATIONS if loc.id == location_id), None)

    async def close(self) -> None:
        await self._vendor.close()

    async def get_menu(self, location_id: str, menu_date: date) -> DayMenu | None:
        location = self.get_location(location_id)
        if location is None:
            logger.info("Unknown location", location_id=location_id)
            return None

        key = menu_cache_key(location_id, menu_date)
        cached = await self._read_cache(key)
        if cached is not None:
            return DayMenu.model_validate(cached)

        return await self._single_flight(key, lambda: self._scrape_menu(location, menu_date))

    async def save_menu(self, menu: DayMenu) -> None:
        """Overwrite the cached document for this menu's location and date."""
        await self._cache.put(
            menu_cache_key(menu.location_id, menu.date),
            menu.model_dump(mode="json"),
            self._menu_ttl,
        )

    async def get_food_detail(self, item_id: str, label_url: str) -> FoodDetail | None:
        key = food_cache_key(item_id)
        cached = await self._read_cache(key)
        if cached is not None:
            return FoodDetail.model_validate(cached)

        return await self._single_flight(key, lambda: self._scrape_food_detail(item_id, label_url))

    async def get_menus_for_date_range(
        self, location_id: str, start: date, days: int
    ) -> list[DayMenu | None]:
        """One menu per day from ``start``, in order; None for days that failed."""
        return list(
            await asyncio.gather(
                *(self.get_menu(location_id, shift_days(start, offset)) for offset in range(days))
            )
        )

    async def get_date_bounds(self, location_id: str) -> DateBounds | None:
        """Earliest and latest dates around today that have menu items.

        Scans ``scan_days`` forward (today included) and backward, fetching every
        day concurrently, which also warms the menu cache. Each direction ends
        at the last day with items before ``empty_streak_limit`` consecutive
        empty days, or at its last scanned day if the streak never triggers.
        """
        if self.get_location(location_id) is None:
            logger.info("Unknown location", location_id=location_id)
            return None

        key = date_bounds_cache_key(location_id)
        cached = await self._read_cache(key)
        if cached is not None:
            return DateBounds.model_validate(cached)

        today = self._today()
        forward = [shift_days(today, offset) for offset in range(self._scan_days)]
        backward = [shift_days(today, -offset) for offset in range(1, self._scan_days + 1)]

        menus = await asyncio.gather(
            *(self.get_menu(location_id, day) for day in forward + backward)
        )
        forward_menus = menus[: len(forward)]
        backward_menus = menus[len(forward) :]

        bounds = DateBounds(
            min_date=self._scan_bound(today, backward, backward_menus),
            max_date=self._scan_bound(today, forward, forward_menus),
        )

        if all(menu is None for menu in menus):
            logger.warning("Date bounds scan got no menus, not caching", location_id=location_id)
            return bounds

        await self._write_cache(key, bounds.model_dump(mode="json"), self._bounds_ttl)
        logger.info(
            "Date bounds cached",
            location_id=location_id,
            min_date=bounds.min_date.isoformat(),
            max_date=bounds.max_date.isoformat(),
        )
        return bounds

    def _scan_bound(self, today: date, days: list[date], menus: list[DayMenu | None]) -> date:
        last_with_items = today
        empty_streak = 0
        for day, menu in zip(days, menus, strict=True):
            if menu is not None and menu.item_count() > 0:
                last_with_items = day
                empty_streak = 0
                continue
            empty_streak += 1
            if empty_streak >= self._empty_streak_limit:
                return last_with_items
        return days[-1] if days else today

    async def _scrape_menu(self, location: Location, menu_date: date) -> DayMenu | None:
        try:
            html = await self._vendor.fetch_menu_page(location, menu_date)
            if html is None:
                return None

            menu = parse_short_menu(html, location.id, location.name, menu_date)
        except Exception as e:
            logger.error(
                "Menu scrape failed",
                location_id=location.id,
                date=menu_date.isoformat(),
                error=str(e),
            )
            return None

        await self._write_cache(
            menu_cache_key(location.id, menu_date), menu.model_dump(mode="json"), self._menu_ttl
        )
        logger.info(
            "Menu cached",
            location_id=location.id,
            date=menu_date.isoformat(),
            items=menu.item_count(),
        )
        return menu

    async def _scrape_food_detail(self, item_id: str, label_url: str) -> FoodDetail | None:
        try:
            html = await self._vendor.fetch_label_page(label_url)
            if html is None:
                return None

            detail = parse_label_page(html, item_id)
        except Exception as e:
            logger.error("Food detail scrape failed", item_id=item_id, error=str(e))
            return None

        await self._write_cache(food_cache_key(item_id), detail.model_dump(mode="json"), self._food_ttl)
        logger.info("Food detail cached", item_id=item_id, ingredients=len(detail.ingredients))
        return detail

    async def _read_cache(self, key: str) -> Any | None:
        """A failed read is treated as a miss."""
        try:
            return await self._cache.get(key)
        except Exception as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return None

    async def _write_cache(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self._cache.put(key, value, ttl_seconds)
        except Exception as e:
            logger.warning("Cache write failed", key=key, error=str(e))

    async def _single_flight(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))
        return await asyncio.shield(task)

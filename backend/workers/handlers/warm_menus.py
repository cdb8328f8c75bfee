import structlog

from core.timezone import today_local
from services.menu_service import MenuService
from workers.handlers.enrich_menu import enrich_menu_with_spiciness
from workers.queue import EnrichmentQueue

logger = structlog.get_logger()


async def handle_warm_menus(menu_service: MenuService, queue: EnrichmentQueue) -> None:
    """Scrape today's menu for every location and queue spicy enrichment."""
    today = today_local()
    logger.info("Pre-warming menu caches", date=today.isoformat())

    warmed = 0
    for location in menu_service.get_locations():
        menu = await menu_service.get_menu(location.id, today)
        if menu is None:
            logger.warning("Could not warm menu", location_id=location.id)
            continue
        enrich_menu_with_spiciness(menu, queue)
        warmed += 1

    logger.info("Menu cache pre-warming complete", warmed=warmed)

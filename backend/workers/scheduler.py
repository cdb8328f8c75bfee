import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from core.config import settings
from services.menu_service import MenuService
from workers.handlers.warm_menus import handle_warm_menus
from workers.queue import EnrichmentQueue

logger = structlog.get_logger()


def create_scheduler(menu_service: MenuService, queue: EnrichmentQueue) -> AsyncIOScheduler:
    """Create and configure the APScheduler instance."""
    scheduler = AsyncIOScheduler(timezone=settings.reference_timezone)

    # Daily cache warm-up before the first meal opens
    scheduler.add_job(
        handle_warm_menus,
        "cron",
        hour=settings.warm_menus_hour,
        id="warm_menus",
        kwargs={"menu_service": menu_service, "queue": queue},
    )

    return scheduler

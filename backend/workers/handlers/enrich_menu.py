import structlog

from models.types import DayMenu, SpicyStatus
from workers.queue import EnrichmentQueue

logger = structlog.get_logger()


def enrich_menu_with_spiciness(menu: DayMenu, queue: EnrichmentQueue) -> bool:
    """Fire-and-forget spicy enrichment for a menu.

    Only queues when some item is still unknown. Returns whether a job was queued;
    the caller never waits on it.
    """
    if all(item.is_spicy != SpicyStatus.UNKNOWN for item in menu.all_items()):
        return False
    queued = queue.submit(menu)
    if queued:
        logger.debug(
            "Queued spicy enrichment",
            location_id=menu.location_id,
            date=menu.date.isoformat(),
        )
    return queued

from functools import lru_cache

from providers.cache import get_cache_store
from providers.cache.interface import CacheStore
from providers.llm import get_llm_provider
from providers.vendor import get_vendor_provider
from services.menu_service import MenuService
from services.spicy_service import SpicyEnrichmentService
from workers.queue import EnrichmentQueue


@lru_cache(maxsize=1)
def get_cache() -> CacheStore:
    """Process-wide cache store. The in-memory store only works as a singleton."""
    return get_cache_store()


@lru_cache(maxsize=1)
def get_menu_service() -> MenuService:
    return MenuService(cache=get_cache(), vendor=get_vendor_provider())


@lru_cache(maxsize=1)
def get_spicy_service() -> SpicyEnrichmentService:
    return SpicyEnrichmentService(
        cache=get_cache(),
        menu_service=get_menu_service(),
        llm=get_llm_provider(),
    )


@lru_cache(maxsize=1)
def get_enrichment_queue() -> EnrichmentQueue:
    return EnrichmentQueue(handler=get_spicy_service().enrich_menu)

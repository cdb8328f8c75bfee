from core.config import settings
from providers.cache.interface import CacheStore


def get_cache_store() -> CacheStore:
    match settings.cache_provider:
        case "memory":
            from providers.cache.memory_adapter import MemoryCacheStore

            return MemoryCacheStore()
        case "supabase":
            from db.supabase_client import get_service_role_client
            from providers.cache.supabase_adapter import SupabaseCacheStore

            return SupabaseCacheStore(db=get_service_role_client(), table=settings.cache_table)
        case _:
            raise ValueError(f"Unknown cache provider: {settings.cache_provider}")

from functools import lru_cache

from supabase import Client, create_client

from core.config import settings


@lru_cache(maxsize=1)
def get_service_role_client() -> Client:
    """Supabase client with the service role key, shared by the whole process.

    Only the Supabase cache store uses it; there are no per-user clients.
    """
    return create_client(settings.supabase_url, settings.supabase_service_role_key)

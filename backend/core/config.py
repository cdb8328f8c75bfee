from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Vendor (FoodPro)
    vendor_provider: str = "foodpro"
    vendor_base_url: str = "https://foodpro.ucr.edu/foodpro"
    vendor_school_name: str = "University of California, Riverside Dining Services"
    vendor_weeks_menus: str = "This Week's Menus"
    vendor_timeout_seconds: float = 15.0
    vendor_user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36"
    )

    # Cache
    cache_provider: str = "memory"
    cache_table: str = "menu_cache"
    menu_cache_ttl_seconds: int = 24 * 3600
    food_cache_ttl_seconds: int = 7 * 24 * 3600
    date_bounds_cache_ttl_seconds: int = 24 * 3600

    # Supabase (cache_provider = "supabase")
    supabase_url: str = "http://127.0.0.1:54321"
    supabase_service_role_key: str = ""

    # LLM
    llm_provider: str = "anthropic"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-latest"
    llm_timeout_seconds: float = 20.0

    # Enrichment
    spicy_batch_size: int = 5
    enrichment_workers: int = 2
    enrichment_queue_size: int = 64
    enrichment_task_timeout_seconds: float = 300.0

    # Date bounds search
    date_bounds_scan_days: int = 30
    date_bounds_empty_streak: int = 3

    # Scheduling
    reference_timezone: str = "America/Los_Angeles"
    warm_menus_hour: int = 5

    # Sentry
    sentry_dsn: str = ""

    # App
    environment: str = "development"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()

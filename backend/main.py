import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import sentry_sdk
import structlog
from fastapi import FastAPI

from api.deps import get_enrichment_queue, get_menu_service
from api.menu import router as menu_router
from core.config import settings
from middleware.request_id import RequestIDMiddleware
from workers.scheduler import create_scheduler

logger = structlog.get_logger()


def _configure_logging() -> None:
    """Filter structlog output at the configured level, keeping request context."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


def _init_sentry() -> None:
    """Initialize Sentry error tracking if DSN is configured."""
    if not settings.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logger.info("Sentry initialized", environment=settings.environment)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup and shutdown events."""
    _init_sentry()
    logger.info("Starting dining menu API", environment=settings.environment)

    menu_service = get_menu_service()
    queue = get_enrichment_queue()
    queue.start()

    scheduler = None
    if settings.environment != "test":
        scheduler = create_scheduler(menu_service, queue)
        scheduler.start()
        logger.info("Scheduler started")
    yield
    if scheduler is not None:
        scheduler.shutdown()
    await queue.stop()
    await menu_service.close()
    logger.info("Shutting down dining menu API")


_configure_logging()

app = FastAPI(
    title="Dining Menu API",
    description="Cached FoodPro dining hall menus with spicy-item enrichment",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(menu_router)

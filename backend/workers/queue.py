import asyncio
from collections.abc import Awaitable, Callable
from datetime import date

import sentry_sdk
import structlog

from core.config import settings
from models.types import DayMenu

logger = structlog.get_logger()

EnrichHandler = Callable[[DayMenu], Awaitable[None]]


class EnrichmentQueue:
    """In-process queue running menu enrichment in the background.

    ``submit`` never blocks or raises: the caller gets no handle on the job.
    A fixed pool of workers drains the queue and bounds every job with a
    timeout. A menu already waiting for the same location and date is not
    queued twice.
    """

    def __init__(
        self,
        handler: EnrichHandler,
        workers: int | None = None,
        maxsize: int | None = None,
        timeout_seconds: float | None = None,
    ):
        self._handler = handler
        self._worker_count = workers or settings.enrichment_workers
        self._timeout = timeout_seconds or settings.enrichment_task_timeout_seconds
        self._queue: asyncio.Queue[DayMenu] = asyncio.Queue(
            maxsize=maxsize or settings.enrichment_queue_size
        )
        self._pending: set[tuple[str, date]] = set()
        self._workers: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def submit(self, menu: DayMenu) -> bool:
        """Queue a menu for enrichment. Returns False when it was not queued."""
        key = (menu.location_id, menu.date)
        if key in self._pending:
            return False
        try:
            self._queue.put_nowait(menu)
        except asyncio.QueueFull:
            logger.warning(
                "Enrichment queue full, dropping menu",
                location_id=menu.location_id,
                date=menu.date.isoformat(),
            )
            return False
        self._pending.add(key)
        return True

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._run_worker(), name=f"enrichment-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("Enrichment workers started", workers=self._worker_count)

    async def stop(self) -> None:
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Enrichment workers stopped")

    async def drain(self) -> None:
        """Wait until every queued menu has been processed."""
        await self._queue.join()

    async def _run_worker(self) -> None:
        while True:
            menu = await self._queue.get()
            try:
                await self._process(menu)
            finally:
                self._pending.discard((menu.location_id, menu.date))
                self._queue.task_done()

    async def _process(self, menu: DayMenu) -> None:
        try:
            await asyncio.wait_for(self._handler(menu), timeout=self._timeout)
        except TimeoutError:
            logger.warning(
                "Enrichment timed out",
                location_id=menu.location_id,
                date=menu.date.isoformat(),
                timeout_seconds=self._timeout,
            )
        except Exception as e:
            logger.error(
                "Enrichment failed",
                location_id=menu.location_id,
                date=menu.date.isoformat(),
                error=str(e),
            )
            sentry_sdk.capture_exception(e)

import time
import uuid

import sentry_sdk
import structlog
import structlog.contextvars
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

_SKIP_LOG_PATHS = {"/health"}


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id, echoed in ``X-Request-ID`` and bound to log context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        path = request.url.path

        structlog.contextvars.bind_contextvars(request_id=request_id, path=path)
        sentry_sdk.set_tag("request_id", request_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)
            response.headers["X-Request-ID"] = request_id

            if path not in _SKIP_LOG_PATHS:
                log = logger.warning if response.status_code >= 500 else logger.info
                log(
                    "request",
                    method=request.method,
                    status=response.status_code,
                    duration_ms=duration_ms,
                )
        finally:
            structlog.contextvars.clear_contextvars()

        return response

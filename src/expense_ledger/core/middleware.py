"""Logging middleware for HTTP requests and responses."""

import logging
import time
from collections.abc import Callable, Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each ledger API request with its status and processing time.

    Every response gets an ``X-Process-Time`` header. Requests to quiet
    paths (health check, API docs) are timed but not logged. Responses with
    a status of 400 or above are logged at WARNING so rejected ledger
    operations stand out.
    """

    def __init__(self, app: ASGIApp, quiet_paths: Iterable[str] = DEFAULT_QUIET_PATHS) -> None:
        super().__init__(app)
        self._quiet_paths = frozenset(quiet_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        quiet = path in self._quiet_paths

        if not quiet:
            client_host = request.client.host if request.client else "unknown"
            logger.info(f"→ {request.method} {path} from {client_host}")

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        if not quiet:
            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            logger.log(
                log_level,
                f"← {request.method} {path} - {response.status_code} ({duration:.3f}s)",
            )

        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

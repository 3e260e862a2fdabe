"""
Request Logging Middleware

Logs each request and its response status with timing.
"""
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from typing import Callable, List, Optional
from ...core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_SKIP_PATHS = ["/health", "/ready", "/docs", "/redoc", "/openapi.json"]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and duration.

    Upload requests also log their declared body size. Health and docs
    endpoints are skipped.
    """

    def __init__(self, app, skip_paths: Optional[List[str]] = None):
        super().__init__(app)
        self.skip_paths = skip_paths or DEFAULT_SKIP_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if any(request.url.path.startswith(path) for path in self.skip_paths):
            return await call_next(request)

        method = request.method
        path = request.url.path
        content_length = request.headers.get("content-length")
        size_note = f" ({content_length} bytes)" if content_length and method in ("POST", "PUT") else ""
        logger.info(f"→ {method} {path}{size_note}")

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(f"{method} {path} raised after {duration_ms:.2f}ms: {e}")
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        # 207 and 4xx upload summaries are normal traffic; only server errors stand out
        log = logger.warning if response.status_code >= 500 else logger.info
        log(f"← {method} {path} {response.status_code} ({duration_ms:.2f}ms)")
        return response

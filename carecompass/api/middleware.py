"""
Request logging middleware
"""
import logging
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("carecompass.requests")

# Requests slower than this are logged as warnings
SLOW_REQUEST_MS = 1000


class TimingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line per request (method, path, whether a bearer token came
    along, duration, status) and exposes the duration as X-Response-Time-ms
    """
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        has_token = "Authorization" in request.headers or "token" in request.query_params
        level = logging.WARNING if elapsed_ms >= SLOW_REQUEST_MS else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed_ms:.1f}ms (token={'yes' if has_token else 'no'})",
        )
        response.headers["X-Response-Time-ms"] = f"{elapsed_ms:.2f}"
        return response

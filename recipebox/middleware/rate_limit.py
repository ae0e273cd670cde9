"""
RecipeBox — Rate Limiting Middleware
====================================

What:  Per-IP sliding window limiter (RATE_LIMIT_REQUESTS per RATE_LIMIT_WINDOW).
How:   Each IP keeps a list of request timestamps. Timestamps older than
       the window are dropped on every request; a full window is answered
       with 429 and a Retry-After of the seconds until the oldest entry expires.

State is in-memory and per process. Running several workers multiplies the
effective limit by the worker count.

The handler is written here rather than raised as RateLimitExceededError
because exceptions raised in BaseHTTPMiddleware bypass FastAPI's handlers.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from recipebox.config import settings
from recipebox.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Purge idle IPs after this many recorded requests
CLEANUP_INTERVAL = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window = settings.rate_limit_window
        window_start = now - window

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.error_code, "message": exc.message, "details": exc.context},
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % CLEANUP_INTERVAL == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))

"""
Sarkari Pulse — Rate Limiter Middleware
Per-IP sliding-window limit on the REST API. In-memory; one process only.
Health checks are never limited.
"""

import time
from collections import defaultdict
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware


EXEMPT_PATHS = {"/", "/health"}


class RateLimiter(BaseHTTPMiddleware):
    """
    Simple in-memory rate limiter.
    Default: 60 requests per minute per IP.
    """

    def __init__(self, app, requests_per_minute: int = 60, clock: Callable[[], float] = time.monotonic):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.window = 60  # seconds
        self.clock = clock
        self._store: dict[str, list[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = self.clock()

        self._store[client_ip] = [t for t in self._store[client_ip] if now - t < self.window]

        if len(self._store[client_ip]) >= self.requests_per_minute:
            oldest = self._store[client_ip][0]
            retry_after = max(1, int(self.window - (now - oldest)))
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "Too many requests. Please wait a minute and try again.",
                },
                headers={"Retry-After": str(retry_after)},
            )

        self._store[client_ip].append(now)
        return await call_next(request)

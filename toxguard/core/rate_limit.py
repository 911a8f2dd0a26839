"""
Fixed-window rate limiting.

Each client IP gets ``max_requests`` per window of ``window_seconds``; the
counter resets when a new window starts. Requests over the cap are answered
with 429 before reaching any route.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    started_at: float
    count: int = 0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class FixedWindowRateLimiter:
    """In-memory fixed-window counter keyed by client identifier."""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def hit(self, client_id: str) -> RateLimitDecision:
        now = self._clock()
        window = self._windows.get(client_id)

        if window is None or now - window.started_at >= self.window_seconds:
            window = _Window(started_at=now)
            self._windows[client_id] = window
            self._evict_expired(now)

        retry_after = max(0, math.ceil(window.started_at + self.window_seconds - now))

        if window.count >= self.max_requests:
            return RateLimitDecision(False, self.max_requests, 0, retry_after)

        window.count += 1
        return RateLimitDecision(True, self.max_requests, self.max_requests - window.count, retry_after)

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now - w.started_at >= self.window_seconds]
        for key in expired:
            del self._windows[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limiter: FixedWindowRateLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        decision = self.limiter.hit(client_ip)

        if not decision.allowed:
            logger.warning("Rate limit exceeded for %s on %s", client_ip, request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests, please try again later."},
                headers={
                    "Retry-After": str(decision.retry_after),
                    "X-RateLimit-Limit": str(decision.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response

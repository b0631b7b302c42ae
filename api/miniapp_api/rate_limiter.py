"""
Rate limiter для входящих HTTP-запросов.

Скользящее окно по IP клиента: не более max_requests за window секунд.
По умолчанию 100 запросов за 15 минут.
"""

from __future__ import annotations

import time
from collections import deque

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp


class SlidingWindowLimiter:
    """Скользящее окно: хранит времена запросов по каждому ключу."""

    sweep_every = 1000  # hit() между полными проходами по ключам

    def __init__(self, window: float, max_requests: int):
        self.window = window  # секунд
        self.max_requests = max_requests
        self._hits: dict[str, deque[float]] = {}
        self._since_sweep = 0

    def _prune_key(self, key: str, now: float) -> deque[float] | None:
        hits = self._hits.get(key)
        if hits is None:
            return None
        cutoff = now - self.window
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[key]
            return None
        return hits

    def sweep(self, now: float | None = None) -> int:
        """Удалить ключи без запросов в окне. Возвращает число удалённых."""
        now = time.monotonic() if now is None else now
        before = len(self._hits)
        for key in list(self._hits):
            self._prune_key(key, now)
        self._since_sweep = 0
        return before - len(self._hits)

    def hit(self, key: str, now: float | None = None) -> bool:
        """Засчитать запрос. False — лимит исчерпан, запрос не засчитан."""
        now = time.monotonic() if now is None else now
        self._since_sweep += 1
        if self._since_sweep >= self.sweep_every:
            self.sweep(now)
        hits = self._prune_key(key, now)
        if hits is None:
            hits = self._hits[key] = deque()
        if len(hits) >= self.max_requests:
            return False
        hits.append(now)
        return True

    def remaining(self, key: str, now: float | None = None) -> int:
        now = time.monotonic() if now is None else now
        hits = self._prune_key(key, now)
        return max(0, self.max_requests - len(hits or ()))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """429 при превышении лимита для IP клиента."""

    def __init__(self, app: ASGIApp, limiter: SlidingWindowLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        if not self.limiter.hit(client_ip):
            return JSONResponse(
                {
                    "error": "Too many requests",
                    "message": "Rate limit exceeded. Please try again later.",
                },
                status_code=429,
            )
        return await call_next(request)

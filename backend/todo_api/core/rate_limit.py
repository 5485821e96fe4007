"""In-memory rate limiting dependency.

The limiter instance lives on ``app.state.rate_limiter`` so each application
(and each test) owns its own counters.
"""

from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Callable, Deque

from fastapi import Request, Response

from todo_api.core.config import settings
from todo_api.core.exceptions import RateLimitExceeded


class SlidingWindowLimiter:
    def __init__(self, *, clock: Callable[[], float] = time.time, max_keys: int = 10_000) -> None:
        self._store: dict[str, Deque[float]] = {}
        self._lock = Lock()
        self._clock = clock
        self._max_keys = max_keys

    def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int, int]:
        if limit <= 0:
            return True, limit, 0
        now = self._clock()
        cutoff = now - window_seconds
        with self._lock:
            if key not in self._store and len(self._store) >= self._max_keys:
                self._sweep(cutoff)
            queue = self._store.setdefault(key, deque())
            while queue and queue[0] <= cutoff:
                queue.popleft()
            if len(queue) >= limit:
                retry_after = max(int(queue[0] + window_seconds - now), 1)
                return False, 0, retry_after
            queue.append(now)
            return True, max(limit - len(queue), 0), 0

    def reset(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _sweep(self, cutoff: float) -> None:
        # Caller holds the lock.
        stale = [key for key, queue in self._store.items() if not queue or queue[-1] <= cutoff]
        for key in stale:
            del self._store[key]


def client_ip(request: Request) -> str:
    peer = request.client.host if request.client else "unknown"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and peer in settings.trusted_proxies:
        return forwarded.split(",")[0].strip() or peer
    return peer


def _scope_limit(scope: str) -> int:
    if scope == "auth":
        return settings.RATE_LIMIT_AUTH_MAX_REQUESTS
    return settings.RATE_LIMIT_MAX_REQUESTS


def rate_limit(scope: str = "default"):
    def _dependency(request: Request, response: Response) -> None:
        limiter: SlidingWindowLimiter | None = getattr(request.app.state, "rate_limiter", None)
        if not settings.RATE_LIMIT_ENABLED or limiter is None:
            return
        limit = _scope_limit(scope)
        ok, remaining, retry_after = limiter.hit(
            f"{scope}:{client_ip(request)}",
            limit=limit,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(remaining, 0))
        response.headers["X-RateLimit-Window"] = str(settings.RATE_LIMIT_WINDOW_SECONDS)
        if not ok:
            raise RateLimitExceeded(
                retry_after=retry_after,
                limit=limit,
                window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            )

    return _dependency

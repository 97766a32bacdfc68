"""Per-client sliding-window throttle for the credential endpoints.

Buckets live in process memory, so limits are per worker.
"""
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict
from fastapi import HTTPException, Request, status
from prairiemed.core.config import settings
from prairiemed.utils.helpers import get_client_ip


class SlidingWindow:
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    def allow(self, key: str, limit: int, period_seconds: int) -> bool:
        """Record a hit for ``key`` unless it already has ``limit`` hits in the window."""
        now = self._clock()
        hits = self._hits[key]
        while hits and hits[0] <= now - period_seconds:
            hits.popleft()
        if len(hits) >= limit:
            return False
        hits.append(now)
        return True

    def reset(self) -> None:
        self._hits.clear()


window = SlidingWindow()


async def rate_limit(request: Request) -> None:
    if not settings.RATE_LIMIT_ENABLED:
        return
    key = f"{get_client_ip(request) or 'unknown'}:{request.url.path}"
    if not window.allow(key, settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_PERIOD_SECONDS):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts, try again later",
        )

import time
from collections import defaultdict, deque
from typing import Deque, Dict

from ...application.ports.rate_limiter import RateLimiter


class InMemoryRateLimiter(RateLimiter):
    """Sliding window per key, local to this process."""

    def __init__(self) -> None:
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = time.time()
        window_start = now - window_seconds
        hits = self._hits[key]
        # prune
        while hits and hits[0] <= window_start:
            hits.popleft()
        if len(hits) >= max_requests:
            return False
        hits.append(now)
        return True

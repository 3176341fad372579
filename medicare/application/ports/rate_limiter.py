from typing import Protocol


class RateLimiter(Protocol):
    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """True while `key` has made fewer than `max_requests` calls in the window."""
        ...

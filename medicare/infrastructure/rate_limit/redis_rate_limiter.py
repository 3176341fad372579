import redis

from ...application.ports.rate_limiter import RateLimiter


class RedisRateLimiter(RateLimiter):
    """Fixed window shared by every process pointed at the same Redis."""

    def __init__(self, url: str, prefix: str = "medicare:rl:") -> None:
        self.client = redis.Redis.from_url(url)
        self.prefix = prefix

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = f"{self.prefix}{key}:{window_seconds}"
        # INCR then EXPIRE in one round trip
        pipe = self.client.pipeline()
        pipe.incr(rk, 1)
        pipe.expire(rk, window_seconds, nx=True)
        count, _ = pipe.execute()
        return int(count) <= int(max_requests)

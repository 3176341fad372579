import time
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from typing import Optional

from .config import settings
from .exceptions import create_error_response
from .application.ports.rate_limiter import RateLimiter
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter

logger = logging.getLogger(__name__)


def build_rate_limiter() -> RateLimiter:
    if settings.REDIS_URL:
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(url=settings.REDIS_URL)
    return InMemoryRateLimiter()


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limiter: Optional[RateLimiter] = None):
        super().__init__(app)
        self.limiter = limiter or build_rate_limiter()
        self.rate_limit = settings.RATE_LIMIT_PER_MINUTE
        self.window = settings.RATE_LIMIT_WINDOW_SEC

    async def dispatch(self, request: Request, call_next):
        # Get client IP
        client_ip = request.client.host if request.client else "unknown"

        if not self.limiter.allow(f"ip:{client_ip}", self.rate_limit, self.window):
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            return JSONResponse(
                status_code=429,
                content=create_error_response("Too many requests from this IP, please try again later.", 429)
            )

        return await call_next(request)


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Add security headers
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        # Log request (guard against missing client info)
        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(f"Response: {response.status_code} in {duration:.3f}s")

        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled error: {str(e)}", exc_info=True)

            message = f"Internal server error: {str(e)}" if settings.DEBUG else "Server error"
            return JSONResponse(
                status_code=500,
                content=create_error_response(message, 500)
            )

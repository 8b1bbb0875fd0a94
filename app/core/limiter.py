import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from app.core.config import settings

logger = logging.getLogger(__name__)

storage_uri = settings.redis_url if not settings.is_testing else "memory://"

# Clients are identified by IP address; limits are shared through Redis
# so every worker sees the same counters.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=storage_uri,
    strategy="fixed-window",
    enabled=not settings.is_testing,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    ip = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded by IP: {ip} on {request.url.path}")
    return JSONResponse(
        status_code=429,
        content={"message": "Too many requests. Please try again later."},
    )

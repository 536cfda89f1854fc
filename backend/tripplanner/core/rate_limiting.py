"""
Request throttling per client IP.
Plan generation costs a paid LLM call, so it gets its own, tighter limit.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

from tripplanner.core.config import settings

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

# Rate limit definitions
GENERATION_LIMIT = settings.generation_rate_limit
HEALTH_LIMIT = "1000/minute"


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 JSON response when rate limit exceeded."""
    client_host = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded for {client_host}: {request.url.path}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests. Please slow down and try again later.",
            "retry_after": 60,
        },
        headers={"Retry-After": "60"},
    )

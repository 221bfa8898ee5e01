"""Rate limiting for operator-triggered imports using SlowAPI."""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

# Manual import passes per client; the scheduler covers routine imports
IMPORT_TRIGGER_LIMIT = "5/minute"

limiter = Limiter(key_func=get_remote_address)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return a JSON 429 naming the limit that was hit."""
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many import requests. Please try again later.",
            "limit": str(exc.detail),
        },
    )

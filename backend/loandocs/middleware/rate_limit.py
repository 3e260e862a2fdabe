"""
Rate limiting for the upload endpoints.

One Limiter is shared by the gateway (``app.state.limiter``) and the route
decorators below.
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from ..core.config import RATE_LIMIT_ENABLED, RATE_LIMIT_PER_MINUTE, RATE_LIMIT_PER_HOUR


def get_rate_limit_key(request: Request) -> str:
    """
    Rate limit key for a request.

    Clients sending an ``X-API-Key`` are limited per key, everyone else per IP.
    """
    api_key = request.headers.get("X-API-Key")
    if api_key:
        return f"api_key:{api_key}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    enabled=RATE_LIMIT_ENABLED
)

upload_rate_limit = limiter.limit(f"{RATE_LIMIT_PER_MINUTE}/minute;{RATE_LIMIT_PER_HOUR}/hour")

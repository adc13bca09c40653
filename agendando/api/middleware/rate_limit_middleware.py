# ===== agendando/api/middleware/rate_limit_middleware.py =====
from typing import Dict, List, Optional, Tuple
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from agendando.config.settings import get_settings

settings = get_settings()

# (bucket, client ip) -> request timestamps inside the window.
# Per process; run behind a shared limiter when scaling out.
_request_times: Dict[Tuple[str, str], List[float]] = {}

MESSAGES = {
    "booking": "Too many booking requests, please try again later.",
    "auth": "Too many authentication attempts, please try again later.",
    "public": "Too many requests, please try again later.",
}


def reset_rate_limits() -> None:
    _request_times.clear()


def _bucket_for(request: Request) -> Optional[Tuple[str, int]]:
    """Which limit applies to this request, if any"""
    path = request.url.path
    if request.method == "POST" and path.rstrip("/") == "/api/v1/bookings":
        return "booking", settings.RATE_LIMIT_BOOKING_MAX
    if path.startswith("/api/v1/auth/"):
        return "auth", settings.RATE_LIMIT_AUTH_MAX
    if path.startswith("/api/v1/public/") or path.startswith("/api/v1/bookings/cancel/"):
        return "public", settings.RATE_LIMIT_PUBLIC_MAX
    return None


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window limits per client IP on the unauthenticated routes:
    booking creation, the public booking pages and host login/registration.
    """

    async def dispatch(self, request: Request, call_next):
        if not settings.RATE_LIMIT_ENABLED:
            return await call_next(request)

        bucket = _bucket_for(request)
        if bucket is None:
            return await call_next(request)

        name, max_requests = bucket
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        key = (name, _client_ip(request))
        current_time = time.time()

        # Remove timestamps that fell out of the window
        recent = [t for t in _request_times.get(key, []) if current_time - t < window]

        if len(recent) >= max_requests:
            retry_after = max(1, int(window - (current_time - recent[0])))
            _request_times[key] = recent
            return JSONResponse(
                status_code=429,
                content={
                    "error": MESSAGES[name],
                    "code": "rate_limited",
                    "details": {"retryAfter": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        recent.append(current_time)
        _request_times[key] = recent
        return await call_next(request)

# ===== agendando/core/middleware.py =====
"""Request tracing and access logging"""
import uuid
import time
import logging
from starlette.requests import Request

logger = logging.getLogger(__name__)


async def correlation_id_middleware(request: Request, call_next):
    """Reuse the caller's X-Correlation-ID or mint one, and echo it back"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request.state.correlation_id = correlation_id

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """One access line per request with status and latency"""
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "-")

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    # Query strings are left out: cancellation tokens travel in paths, and
    # payment ids in query params
    path = request.url.path
    if path.startswith("/api/v1/bookings/cancel/"):
        path = "/api/v1/bookings/cancel/<token>"

    logger.info(
        f"{request.method} {path} -> {response.status_code} ({duration_ms} ms) [{correlation_id}]",
        extra={
            "correlation_id": correlation_id,
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
    )

    return response

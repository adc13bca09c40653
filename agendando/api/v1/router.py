"""
API v1 router setup
Organized into: public (guests, no auth) and dashboard (host JWT) routes
"""
from fastapi import APIRouter

from agendando.api.v1.public import auth, booking_page, bookings as public_bookings
from agendando.api.v1.dashboard import availability, bookings as host_bookings, event_types, workflows

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(
    auth.router,
    tags=["Public"]
)

api_v1_router.include_router(
    booking_page.router,
    # booking_page.router already has "/public" prefix
    tags=["Public"]
)

api_v1_router.include_router(
    public_bookings.router,
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    host_bookings.router,
    tags=["Dashboard"]
)

api_v1_router.include_router(
    availability.router,
    tags=["Dashboard"]
)

api_v1_router.include_router(
    event_types.router,
    tags=["Dashboard"]
)

api_v1_router.include_router(
    workflows.router,
    tags=["Dashboard"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and how each group of routes is authenticated"""
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required",
            "dashboard": "JWT Bearer token required (host login)",
        }
    }

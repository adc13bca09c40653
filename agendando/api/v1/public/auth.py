# ============================================================================
# FILE: agendando/api/v1/public/auth.py
# Host authentication endpoints - register, login, current host
# ============================================================================
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from agendando.api.dependencies import create_access_token, get_current_host
from agendando.config.database import get_db
from agendando.models.host import Host
from agendando.schemas.auth import HostAccountOut, LoginRequest, RegisterRequest, TokenResponse
from agendando.services.host.host_service import HostService

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(host: Host) -> TokenResponse:
    access_token = create_access_token(
        data={"sub": str(host.id), "email": host.email}
    )
    return TokenResponse(access_token=access_token, host=HostAccountOut.model_validate(host))


# Password hashing is CPU-bound; plain def handlers run in the threadpool
@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
        request: RegisterRequest,
        db: Session = Depends(get_db)
):
    """
    Create a host account with the default weekday schedule and
    scheduling config, and log it in.
    """
    host = HostService.register(
        db,
        email=request.email,
        username=request.username,
        password=request.password,
        name=request.name,
        timezone=request.timezone,
    )
    return _token_response(host)


@router.post("/login", response_model=TokenResponse)
def login(
        request: LoginRequest,
        db: Session = Depends(get_db)
):
    """Login with email and password. Returns a bearer access token."""
    host = HostService.authenticate(db, request.email, request.password)
    return _token_response(host)


@router.get("/me", response_model=HostAccountOut)
async def get_me(current_host: Host = Depends(get_current_host)):
    return current_host

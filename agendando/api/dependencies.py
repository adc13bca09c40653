# ============================================================================
# FILE: agendando/api/dependencies.py
# JWT authentication dependencies for host (dashboard) endpoints
# ============================================================================
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from uuid import UUID

from agendando.config.database import get_db
from agendando.config.settings import settings
from agendando.models.host import Host

# ============================================================================
# Security Schemes
# ============================================================================

jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter your JWT access token",
    auto_error=False,
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ============================================================================
# JWT Token Functions
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary with claims (should include 'sub' with the host id)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access"
    })

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def verify_access_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise _unauthorized(f"Could not validate credentials: {str(e)}")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    return payload


# ============================================================================
# JWT Authentication Dependencies
# ============================================================================

async def get_current_host(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(jwt_security),
        db: Session = Depends(get_db)
) -> Host:
    """
    Dependency to get the authenticated host from the JWT access token.

    Usage in routes:
        @router.get("/bookings")
        async def list_bookings(current_host: Host = Depends(get_current_host)):
            ...

    Raises:
        HTTPException 401: If token is missing or invalid, or the host is gone
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = verify_access_token(credentials.credentials)

    host_id_str: Optional[str] = payload.get("sub")
    if host_id_str is None:
        raise _unauthorized("Could not validate credentials")

    try:
        host_id = UUID(host_id_str)
    except ValueError:
        raise _unauthorized("Invalid host ID in token")

    host = db.get(Host, host_id)
    if host is None or not host.is_active:
        raise _unauthorized("Host not found or inactive")

    return host

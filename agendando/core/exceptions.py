# ===== agendando/core/exceptions.py =====
"""
Domain exceptions raised by services and rendered by the API layer.

Every exception carries a human message, a stable machine code and optional
details. main.py turns them into ``{"error", "code", "details"}`` responses.
"""
from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for all domain-specific errors"""

    status_code: int = 500
    default_code: str = "internal"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFoundException(DomainException):
    """Requested resource does not exist (or is not visible to the caller)"""

    status_code = 404
    default_code = "not_found"


class InvalidInputException(DomainException):
    """Request is well-formed but its values are not acceptable"""

    status_code = 400
    default_code = "invalid_input"


class ConflictException(DomainException):
    """The requested time overlaps an existing booking"""

    status_code = 409
    default_code = "conflict"


class AlreadyCancelledException(DomainException):
    status_code = 400
    default_code = "already_cancelled"


class UnauthorizedException(DomainException):
    status_code = 401
    default_code = "unauthorized"


class ServiceException(DomainException):
    """Persistence or provider failure the caller cannot fix"""

    status_code = 500
    default_code = "internal"

# ===== agendando/schemas/auth.py =====
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from agendando.schemas.base import CamelModel
from agendando.services.availability.time_window import is_valid_timezone


class RegisterRequest(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[a-z0-9-]+$")
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=8, max_length=72)
    name: str = Field(..., min_length=1, max_length=200)
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        if not is_valid_timezone(v):
            raise ValueError(f"Unknown IANA timezone: {v}")
        return v


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class HostAccountOut(CamelModel):
    id: UUID
    email: str
    username: str
    name: str
    timezone: str


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    host: HostAccountOut

# ===== agendando/schemas/event_type.py =====
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from agendando.schemas.base import CamelModel

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class EventTypeCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    duration_minutes: int = Field(30, ge=5, le=720)
    location: Optional[str] = Field(None, max_length=255)
    color: Optional[str] = Field(None, max_length=20)
    is_active: bool = True
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if v else v


class EventTypeUpdate(CamelModel):
    """All fields optional - only send what you want to update"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=5, le=720)
    location: Optional[str] = Field(None, max_length=255)
    color: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    @field_validator("title", "slug", "duration_minutes", "is_active")
    @classmethod
    def not_null(cls, v):
        # omit the field to leave it unchanged; these columns have no empty state
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if v else v


class EventTypeOut(CamelModel):
    id: UUID
    title: str
    slug: str
    description: Optional[str] = None
    duration_minutes: int
    location: Optional[str] = None
    color: Optional[str] = None
    is_active: bool
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    created_at: Optional[datetime] = None

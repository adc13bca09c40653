# ===== agendando/schemas/availability.py =====
"""
Pydantic schemas for weekly rules, date overrides and scheduling config
"""
import datetime as dt
from typing import List, Optional
from uuid import UUID

from pydantic import Field, model_validator

from agendando.schemas.base import CamelModel

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TimeInterval(CamelModel):
    start_time: str = Field(..., pattern=HHMM_PATTERN)
    end_time: str = Field(..., pattern=HHMM_PATTERN)

    @model_validator(mode="after")
    def check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class WeeklyRuleIn(TimeInterval):
    day_of_week: int = Field(..., ge=0, le=6)


class WeeklyRuleOut(CamelModel):
    id: UUID
    day_of_week: int
    start_time: str
    end_time: str


class WeeklyRulesUpdate(CamelModel):
    rules: List[WeeklyRuleIn]


class SchedulingConfigOut(CamelModel):
    buffer_before: int
    buffer_after: int
    min_notice_minutes: int
    max_days_in_advance: int


class SchedulingConfigUpdate(CamelModel):
    """All fields optional - only send what you want to update"""
    buffer_before: Optional[int] = Field(None, ge=0, le=120)
    buffer_after: Optional[int] = Field(None, ge=0, le=120)
    min_notice_minutes: Optional[int] = Field(None, ge=0, le=10080)
    max_days_in_advance: Optional[int] = Field(None, ge=1, le=365)


class DateOverrideIn(CamelModel):
    date: dt.date
    is_blocked: bool = False
    slots: List[TimeInterval] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_slots(self):
        if not self.is_blocked and not self.slots:
            raise ValueError("slots are required when the date is not blocked")
        return self


class DateOverrideOut(CamelModel):
    id: UUID
    date: dt.date
    is_blocked: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None

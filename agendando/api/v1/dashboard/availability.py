# ============================================================================
# FILE: agendando/api/v1/dashboard/availability.py
# Host availability endpoints (JWT) - thin HTTP layer
# IMPORTANT: Specific routes MUST come before parameterized routes
# ============================================================================
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.orm import Session

from agendando.api.dependencies import get_current_host
from agendando.config.database import get_db
from agendando.models.host import Host
from agendando.schemas.availability import (
    DateOverrideIn,
    DateOverrideOut,
    SchedulingConfigOut,
    SchedulingConfigUpdate,
    WeeklyRuleOut,
    WeeklyRulesUpdate,
)
from agendando.services.availability.availability_service import AvailabilityService

router = APIRouter(prefix="/availability", tags=["dashboard-availability"])


# ========== WEEKLY RULES ==========

@router.get("", response_model=List[WeeklyRuleOut])
async def get_weekly_rules(
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return AvailabilityService.get_weekly_rules(db, current_host.id)


@router.put("", response_model=List[WeeklyRuleOut])
async def replace_weekly_rules(
        body: WeeklyRulesUpdate,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Replace the whole weekly schedule. Days are 0=Sunday .. 6=Saturday."""
    rules = [rule.model_dump() for rule in body.rules]
    return AvailabilityService.replace_weekly_rules(db, current_host.id, rules)


# ========== SCHEDULING CONFIG ==========

@router.get("/config", response_model=SchedulingConfigOut)
async def get_config(
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return AvailabilityService.get_or_create_config(db, current_host.id)


@router.patch("/config", response_model=SchedulingConfigOut)
async def update_config(
        body: SchedulingConfigUpdate,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return AvailabilityService.update_config(db, current_host.id, **body.model_dump(exclude_unset=True))


# ========== DATE OVERRIDES ==========

@router.get("/overrides", response_model=List[DateOverrideOut])
async def get_overrides(
        from_date: Optional[date] = Query(None, alias="from", description="Only overrides on or after this date"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return AvailabilityService.get_overrides(db, current_host.id, from_date)


@router.post("/overrides", response_model=List[DateOverrideOut], status_code=status.HTTP_201_CREATED)
async def set_overrides(
        body: DateOverrideIn,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Block a date, or replace its hours with custom slots"""
    return AvailabilityService.set_overrides(
        db,
        current_host.id,
        body.date,
        body.is_blocked,
        [slot.model_dump() for slot in body.slots],
    )


@router.delete("/overrides/{override_date}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_overrides(
        override_date: date = Path(..., description="Date to clear, YYYY-MM-DD"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    AvailabilityService.delete_overrides(db, current_host.id, override_date)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

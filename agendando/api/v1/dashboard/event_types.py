# ============================================================================
# FILE: agendando/api/v1/dashboard/event_types.py
# Host event type endpoints (JWT) - thin HTTP layer
# ============================================================================
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session

from agendando.api.dependencies import get_current_host
from agendando.config.database import get_db
from agendando.models.host import Host
from agendando.schemas.event_type import EventTypeCreate, EventTypeOut, EventTypeUpdate
from agendando.services.event_type.event_type_service import EventTypeService

router = APIRouter(prefix="/event-types", tags=["dashboard-event-types"])


@router.get("", response_model=List[EventTypeOut])
async def list_event_types(
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return EventTypeService.list_for_host(db, current_host.id)


@router.post("", response_model=EventTypeOut, status_code=status.HTTP_201_CREATED)
async def create_event_type(
        body: EventTypeCreate,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return EventTypeService.create(db, current_host.id, **body.model_dump())


@router.patch("/{event_type_id}", response_model=EventTypeOut)
async def update_event_type(
        body: EventTypeUpdate,
        event_type_id: UUID = Path(..., description="The event type ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return EventTypeService.update(db, current_host.id, event_type_id, **body.model_dump(exclude_unset=True))


@router.delete("/{event_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_type(
        event_type_id: UUID = Path(..., description="The event type ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Deletes the event type, or deactivates it when bookings reference it"""
    EventTypeService.delete(db, current_host.id, event_type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

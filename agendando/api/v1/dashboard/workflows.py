# ============================================================================
# FILE: agendando/api/v1/dashboard/workflows.py
# Host workflow endpoints (JWT) - thin HTTP layer
# ============================================================================
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session

from agendando.api.dependencies import get_current_host
from agendando.config.database import get_db
from agendando.models.host import Host
from agendando.models.workflow import Workflow
from agendando.schemas.workflow import WorkflowCreate, WorkflowOut
from agendando.services.workflow.workflow_service import WorkflowService, parse_action

router = APIRouter(prefix="/workflows", tags=["dashboard-workflows"])


def _to_out(workflow: Workflow) -> WorkflowOut:
    return WorkflowOut(
        id=workflow.id,
        name=workflow.name,
        is_active=workflow.is_active,
        triggers=[trigger.type for trigger in workflow.triggers],
        actions=[parse_action(action) for action in workflow.actions],
    )


@router.get("", response_model=List[WorkflowOut])
async def list_workflows(
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return [_to_out(w) for w in WorkflowService.list_workflows(db, current_host.id)]


@router.post("", response_model=WorkflowOut, status_code=status.HTTP_201_CREATED)
async def create_workflow(
        body: WorkflowCreate,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """
    Triggers: BOOKING_CREATED, BOOKING_CANCELLED, BOOKING_REMINDER_24H,
    BOOKING_REMINDER_1H. Actions run in the order given.
    """
    workflow = WorkflowService.create_workflow(
        db,
        current_host.id,
        name=body.name,
        triggers=body.triggers,
        actions=body.actions,
        is_active=body.is_active,
    )
    return _to_out(workflow)


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(
        workflow_id: UUID = Path(..., description="The workflow ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    WorkflowService.delete_workflow(db, current_host.id, workflow_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

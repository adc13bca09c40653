# ===== agendando/services/workflow/workflow_service.py =====
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from agendando.core.exceptions import NotFoundException
from agendando.models import (
    ActionType,
    Booking,
    BookingStatus,
    EventType,
    Host,
    JobType,
    TriggerType,
    Workflow,
    WorkflowAction,
    WorkflowTrigger,
)
from agendando.schemas.workflow import (
    ActionConfig,
    SendEmailConfig,
    SendWebhookConfig,
    action_config_adapter,
)
from agendando.services.webhook.webhook_service import WebhookService
from agendando.services.workflow.job_service import JobService

logger = logging.getLogger(__name__)

REMINDER_OFFSETS = {
    TriggerType.BOOKING_REMINDER_24H: timedelta(hours=24),
    TriggerType.BOOKING_REMINDER_1H: timedelta(hours=1),
}


def render_template(template: str, context: Dict[str, str]) -> str:
    """Substitute {{placeholder}} tokens; unknown placeholders are left as-is"""
    for key, value in context.items():
        template = template.replace("{{" + key + "}}", value)
    return template


def booking_context(booking: Booking, event_type: EventType, host: Host) -> Dict[str, str]:
    return {
        "guestName": booking.guest_name,
        "guestEmail": booking.guest_email,
        "hostName": host.name,
        "eventTitle": event_type.title,
        "startTime": booking.start_time.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        "duration": str(event_type.duration_minutes),
    }


def parse_action(action: WorkflowAction) -> ActionConfig:
    return action_config_adapter.validate_python({**(action.config or {}), "type": action.type.value})


class WorkflowService:
    """Host automations fired by booking events"""

    # -- CRUD ------------------------------------------------------------

    @staticmethod
    def list_workflows(db: Session, host_id: UUID) -> List[Workflow]:
        return db.query(Workflow).filter(
            Workflow.host_id == host_id
        ).order_by(Workflow.created_at.desc()).all()

    @staticmethod
    def create_workflow(
            db: Session,
            host_id: UUID,
            name: str,
            triggers: Sequence[TriggerType],
            actions: Sequence[ActionConfig],
            is_active: bool = True,
    ) -> Workflow:
        workflow = Workflow(host_id=host_id, name=name, is_active=is_active)
        for trigger_type in dict.fromkeys(triggers):
            workflow.triggers.append(WorkflowTrigger(type=TriggerType(trigger_type)))
        for index, action in enumerate(actions):
            workflow.actions.append(WorkflowAction(
                type=ActionType(action.type),
                config=action.model_dump(exclude={"type"}),
                order=index,
            ))

        db.add(workflow)
        db.commit()
        db.refresh(workflow)
        logger.info(f"Created workflow {workflow.id} for host {host_id}")
        return workflow

    @staticmethod
    def delete_workflow(db: Session, host_id: UUID, workflow_id: UUID) -> None:
        workflow = db.query(Workflow).filter_by(id=workflow_id, host_id=host_id).first()
        if not workflow:
            raise NotFoundException("Workflow not found")
        db.delete(workflow)
        db.commit()

    # -- execution ---------------------------------------------------------

    @staticmethod
    def _workflows_for(db: Session, host_id: UUID, trigger_types: Sequence[TriggerType]) -> List[Workflow]:
        return db.query(Workflow).filter(
            Workflow.host_id == host_id,
            Workflow.is_active.is_(True),
            Workflow.triggers.any(WorkflowTrigger.type.in_(trigger_types)),
        ).order_by(Workflow.created_at).all()

    @staticmethod
    def execute_action(db: Session, config: ActionConfig, booking: Booking) -> None:
        """Turn one action into a job; the caller commits"""
        event_type, host = booking.event_type, booking.host

        if isinstance(config, SendEmailConfig):
            context = booking_context(booking, event_type, host)
            if config.to == "guest":
                recipient = booking.guest_email
            elif config.to == "host":
                recipient = host.email
            else:
                recipient = config.to
            JobService.enqueue(
                db,
                JobType.SEND_EMAIL,
                {
                    "to": recipient,
                    "subject": render_template(config.subject, context),
                    "body": render_template(config.body, context),
                },
                host_id=booking.host_id,
                booking_id=booking.id,
            )

        elif isinstance(config, SendWebhookConfig):
            payload = WebhookService.build_payload("booking", booking.host_id, {
                "id": str(booking.id),
                "status": booking.status.value,
                "guestName": booking.guest_name,
                "guestEmail": booking.guest_email,
                "startTime": booking.start_time.isoformat(),
                "endTime": booking.end_time.isoformat(),
                "eventTitle": event_type.title,
                "hostName": host.name,
            })
            JobService.enqueue(
                db,
                JobType.SEND_WEBHOOK,
                {"url": config.url, "method": config.method, "payload": payload},
                host_id=booking.host_id,
                booking_id=booking.id,
            )

    @staticmethod
    def trigger(db: Session, trigger_type: TriggerType, booking: Booking) -> int:
        """Run every active workflow of the host listening for trigger_type"""
        count = 0
        for workflow in WorkflowService._workflows_for(db, booking.host_id, [trigger_type]):
            for action in workflow.actions:
                WorkflowService.execute_action(db, parse_action(action), booking)
                count += 1

        if count:
            logger.info(f"{trigger_type.value} queued {count} workflow actions for booking {booking.id}")
        return count

    @staticmethod
    def schedule_reminders(db: Session, booking: Booking, now: Optional[datetime] = None) -> int:
        """One REMINDER job per (reminder trigger, action), skipped when already due"""
        now = now or datetime.now(timezone.utc)
        count = 0

        for workflow in WorkflowService._workflows_for(db, booking.host_id, list(REMINDER_OFFSETS)):
            for trigger in workflow.triggers:
                offset = REMINDER_OFFSETS.get(trigger.type)
                if offset is None:
                    continue
                scheduled_at = booking.start_time - offset
                if scheduled_at <= now:
                    continue
                for action in workflow.actions:
                    JobService.enqueue(
                        db,
                        JobType.REMINDER,
                        {
                            "booking_id": str(booking.id),
                            "workflow_id": str(workflow.id),
                            "trigger_type": trigger.type.value,
                            "action_type": action.type.value,
                            "action_config": action.config,
                        },
                        scheduled_at=scheduled_at,
                        host_id=booking.host_id,
                        booking_id=booking.id,
                    )
                    count += 1
        return count

    @staticmethod
    def cancel_reminders(db: Session, booking_id: UUID) -> int:
        return JobService.cancel_pending(db, booking_id, JobType.REMINDER)

    @staticmethod
    def run_reminder(db: Session, payload: Dict) -> bool:
        """Execute a due reminder's action if the booking is still confirmed"""
        booking = db.get(Booking, UUID(payload["booking_id"]))
        if booking is None or booking.status != BookingStatus.CONFIRMED:
            logger.info(f"Skipping reminder for booking {payload['booking_id']}: no longer confirmed")
            return False

        config = action_config_adapter.validate_python(
            {**(payload.get("action_config") or {}), "type": payload["action_type"]}
        )
        WorkflowService.execute_action(db, config, booking)
        return True

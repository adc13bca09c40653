# ===== agendando/services/workflow/job_handlers.py =====
"""Executors for each job type. A handler raises to have the job retried."""
from typing import Dict, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from agendando.models import Booking, BookingStatus, IntegrationProvider, Job, JobType
from agendando.services.calendar.google_calendar_service import GoogleCalendarService
from agendando.services.calendar.zoom_service import ZoomService
from agendando.services.email.email_service import EmailService, sanitize_html, strip_tags
from agendando.services.integration.integration_service import IntegrationService
from agendando.services.webhook.webhook_service import WebhookService
from agendando.services.workflow.job_service import JobHandler
from agendando.services.workflow.workflow_service import WorkflowService
from agendando.utils.ics import build_ics

logger = logging.getLogger(__name__)


def _load_booking(db: Session, job: Job) -> Optional[Booking]:
    booking_id = (job.payload or {}).get("booking_id")
    booking = db.get(Booking, UUID(booking_id)) if booking_id else None
    if booking is None:
        logger.info(f"Job {job.id} ({job.type}): booking {booking_id} no longer exists, skipping")
    return booking


def send_email(db: Session, job: Job) -> None:
    payload = job.payload
    EmailService.send_email(
        payload["to"],
        strip_tags(payload["subject"]),
        sanitize_html(payload["body"]),
    )


def send_webhook(db: Session, job: Job) -> None:
    payload = job.payload
    WebhookService().deliver(payload["url"], payload.get("method", "POST"), payload["payload"])


def booking_confirmation_email(db: Session, job: Job) -> None:
    booking = _load_booking(db, job)
    if booking is None or booking.status != BookingStatus.CONFIRMED:
        return

    event_type, host = booking.event_type, booking.host
    location = booking.meeting_url or (
        event_type.location if event_type.location not in ("meet", "zoom") else None
    )
    ics = build_ics(
        uid=str(booking.id),
        start=booking.start_time,
        end=booking.end_time,
        summary=event_type.title,
        organizer_name=host.name,
        organizer_email=host.email,
        attendee_name=booking.guest_name,
        attendee_email=booking.guest_email,
        description=booking.notes,
        location=location,
    )
    EmailService.send_booking_confirmation(booking, event_type, host, ics)


def booking_cancellation_email(db: Session, job: Job) -> None:
    booking = _load_booking(db, job)
    if booking is None:
        return
    EmailService.send_booking_cancellation(booking, booking.event_type, booking.host)


def _integration(db: Session, booking: Booking, provider: IntegrationProvider):
    integration = IntegrationService.get_active(db, booking.host_id, provider)
    if integration is None:
        logger.info(f"{provider.value} disconnected for host {booking.host_id}, skipping")
    return integration


def create_calendar_event(db: Session, job: Job) -> None:
    booking = _load_booking(db, job)
    if booking is None or booking.status == BookingStatus.CANCELLED or booking.external_event_id:
        return
    integration = _integration(db, booking, IntegrationProvider.GOOGLE_CALENDAR)
    if integration is None:
        return

    event_id, meet_link = GoogleCalendarService().create_event(
        db, integration, booking, booking.event_type, booking.host
    )
    booking.external_event_id = event_id
    if meet_link and not booking.meeting_url:
        booking.meeting_url = meet_link


def delete_calendar_event(db: Session, job: Job) -> None:
    booking = _load_booking(db, job)
    if booking is None or not booking.external_event_id:
        return
    integration = _integration(db, booking, IntegrationProvider.GOOGLE_CALENDAR)
    if integration is None:
        return

    GoogleCalendarService().delete_event(db, integration, booking.external_event_id)
    booking.external_event_id = None


def create_zoom_meeting(db: Session, job: Job) -> None:
    booking = _load_booking(db, job)
    if booking is None or booking.status == BookingStatus.CANCELLED or booking.zoom_meeting_id:
        return
    integration = _integration(db, booking, IntegrationProvider.ZOOM)
    if integration is None:
        return

    meeting_id, join_url = ZoomService().create_meeting(db, integration, booking, booking.event_type)
    booking.zoom_meeting_id = meeting_id
    booking.meeting_url = join_url


def delete_zoom_meeting(db: Session, job: Job) -> None:
    booking = _load_booking(db, job)
    if booking is None or not booking.zoom_meeting_id:
        return
    integration = _integration(db, booking, IntegrationProvider.ZOOM)
    if integration is None:
        return

    ZoomService().delete_meeting(db, integration, booking.zoom_meeting_id)
    booking.zoom_meeting_id = None


def reminder(db: Session, job: Job) -> None:
    WorkflowService.run_reminder(db, job.payload)


JOB_HANDLERS: Dict[str, JobHandler] = {
    JobType.SEND_EMAIL.value: send_email,
    JobType.SEND_WEBHOOK.value: send_webhook,
    JobType.BOOKING_CONFIRMATION_EMAIL.value: booking_confirmation_email,
    JobType.BOOKING_CANCELLATION_EMAIL.value: booking_cancellation_email,
    JobType.CREATE_CALENDAR_EVENT.value: create_calendar_event,
    JobType.DELETE_CALENDAR_EVENT.value: delete_calendar_event,
    JobType.CREATE_ZOOM_MEETING.value: create_zoom_meeting,
    JobType.DELETE_ZOOM_MEETING.value: delete_zoom_meeting,
    JobType.REMINDER.value: reminder,
}

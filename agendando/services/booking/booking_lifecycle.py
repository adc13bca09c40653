# ===== agendando/services/booking/booking_lifecycle.py =====
"""
Side effects of confirming or cancelling a booking.

Every step only enqueues durable jobs, commits on its own, and is isolated
from the others: a failing step is logged and rolled back while the
booking's state change stands.
"""
from typing import Callable, List, Tuple
import logging

from sqlalchemy.orm import Session

from agendando.models import Booking, IntegrationProvider, JobType, TriggerType
from agendando.services.integration.integration_service import IntegrationService
from agendando.services.waitlist.waitlist_service import WaitlistService
from agendando.services.workflow.job_service import JobService
from agendando.services.workflow.workflow_service import WorkflowService

logger = logging.getLogger(__name__)

Step = Tuple[str, Callable[[], object]]


class BookingLifecycle:

    @staticmethod
    def _run_steps(db: Session, booking_id, steps: List[Step]) -> List[str]:
        """Run each step in its own transaction; returns the names of failed steps"""
        failed = []
        for name, step in steps:
            try:
                step()
                db.commit()
            except Exception as e:
                db.rollback()
                failed.append(name)
                logger.error(f"Booking {booking_id}: {name} failed: {e}", exc_info=True)
        return failed

    @staticmethod
    def _enqueue(db: Session, booking: Booking, job_type: JobType) -> None:
        JobService.enqueue(
            db,
            job_type,
            {"booking_id": str(booking.id)},
            host_id=booking.host_id,
            booking_id=booking.id,
        )

    @staticmethod
    def on_confirmed(db: Session, booking: Booking) -> List[str]:
        booking_id = booking.id
        event_type = booking.event_type

        def calendar_event():
            if IntegrationService.is_connected(db, booking.host_id, IntegrationProvider.GOOGLE_CALENDAR):
                BookingLifecycle._enqueue(db, booking, JobType.CREATE_CALENDAR_EVENT)

        def zoom_meeting():
            if event_type.location == "zoom" and IntegrationService.is_connected(
                    db, booking.host_id, IntegrationProvider.ZOOM):
                BookingLifecycle._enqueue(db, booking, JobType.CREATE_ZOOM_MEETING)

        steps: List[Step] = [
            ("calendar event", calendar_event),
            ("zoom meeting", zoom_meeting),
            ("confirmation email", lambda: BookingLifecycle._enqueue(db, booking, JobType.BOOKING_CONFIRMATION_EMAIL)),
            ("workflow trigger", lambda: WorkflowService.trigger(db, TriggerType.BOOKING_CREATED, booking)),
            ("reminders", lambda: WorkflowService.schedule_reminders(db, booking)),
            ("waitlist removal", lambda: WaitlistService.remove(db, booking.event_type_id, booking.guest_email)),
        ]
        failed = BookingLifecycle._run_steps(db, booking_id, steps)
        logger.info(f"Booking {booking_id} confirmed; side effects queued ({len(failed)} failed)")
        return failed

    @staticmethod
    def on_cancelled(db: Session, booking: Booking, was_confirmed: bool = True) -> List[str]:
        """
        Holds that lapse before payment only release the slot to the waitlist;
        the guest, calendars and workflows never saw them as confirmed.
        """
        booking_id = booking.id
        event_type, host = booking.event_type, booking.host

        def calendar_event():
            if IntegrationService.is_connected(db, booking.host_id, IntegrationProvider.GOOGLE_CALENDAR):
                BookingLifecycle._enqueue(db, booking, JobType.DELETE_CALENDAR_EVENT)

        def zoom_meeting():
            if event_type.location == "zoom" and IntegrationService.is_connected(
                    db, booking.host_id, IntegrationProvider.ZOOM):
                BookingLifecycle._enqueue(db, booking, JobType.DELETE_ZOOM_MEETING)

        steps: List[Step] = [
            ("cancellation email", lambda: BookingLifecycle._enqueue(db, booking, JobType.BOOKING_CANCELLATION_EMAIL)),
            ("calendar event removal", calendar_event),
            ("zoom meeting removal", zoom_meeting),
            ("workflow trigger", lambda: WorkflowService.trigger(db, TriggerType.BOOKING_CANCELLED, booking)),
            ("reminder cancellation", lambda: WorkflowService.cancel_reminders(db, booking.id)),
        ] if was_confirmed else []
        steps.append(("waitlist notification", lambda: WaitlistService.notify(db, event_type, host)))

        failed = BookingLifecycle._run_steps(db, booking_id, steps)
        logger.info(f"Booking {booking_id} cancelled; side effects queued ({len(failed)} failed)")
        return failed

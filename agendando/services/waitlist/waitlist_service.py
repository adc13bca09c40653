# ===== agendando/services/waitlist/waitlist_service.py =====
from uuid import UUID
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agendando.models import EventType, Host, JobType, WaitlistEntry
from agendando.models.base import utcnow
from agendando.services.email.email_service import EmailService
from agendando.services.workflow.job_service import JobService
from agendando.utils.validation import normalize_email

logger = logging.getLogger(__name__)


class WaitlistService:
    """Guests waiting for a slot to open on a fully booked event type"""

    @staticmethod
    def join(db: Session, event_type: EventType, guest_name: str, guest_email: str) -> WaitlistEntry:
        """Upsert by (event type, email); re-joining refreshes name and timestamp"""
        guest_email = normalize_email(guest_email)

        entry = db.query(WaitlistEntry).filter_by(
            event_type_id=event_type.id, guest_email=guest_email
        ).first()
        if entry:
            entry.guest_name = guest_name
            entry.created_at = utcnow()
            db.commit()
            return entry

        entry = WaitlistEntry(event_type_id=event_type.id, guest_name=guest_name, guest_email=guest_email)
        db.add(entry)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            entry = db.query(WaitlistEntry).filter_by(
                event_type_id=event_type.id, guest_email=guest_email
            ).one()

        logger.info(f"{guest_email} joined waitlist for event type {event_type.id}")
        return entry

    @staticmethod
    def notify(db: Session, event_type: EventType, host: Host) -> int:
        """Queue one email per waiting guest; the caller commits"""
        entries = db.query(WaitlistEntry).filter_by(event_type_id=event_type.id).all()
        for entry in entries:
            subject, body = EmailService.waitlist_notification_content(entry.guest_name, event_type, host)
            JobService.enqueue(
                db,
                JobType.SEND_EMAIL,
                {"to": entry.guest_email, "subject": subject, "body": body},
                host_id=host.id,
            )
        return len(entries)

    @staticmethod
    def remove(db: Session, event_type_id: UUID, guest_email: str) -> int:
        """Delete the guest's entry; the caller commits"""
        return db.query(WaitlistEntry).filter_by(
            event_type_id=event_type_id, guest_email=guest_email
        ).delete(synchronize_session=False)

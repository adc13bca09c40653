# ===== agendando/models/job.py =====
from sqlalchemy import Column, String, Integer, Text, JSON, ForeignKey, Uuid, Index, Enum as SQLEnum
import uuid
import enum

from agendando.models.base import Base, UTCDateTime, utcnow


class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class JobType(str, enum.Enum):
    SEND_EMAIL = "SEND_EMAIL"
    SEND_WEBHOOK = "SEND_WEBHOOK"
    BOOKING_CONFIRMATION_EMAIL = "BOOKING_CONFIRMATION_EMAIL"
    BOOKING_CANCELLATION_EMAIL = "BOOKING_CANCELLATION_EMAIL"
    CREATE_CALENDAR_EVENT = "CREATE_CALENDAR_EVENT"
    DELETE_CALENDAR_EVENT = "DELETE_CALENDAR_EVENT"
    CREATE_ZOOM_MEETING = "CREATE_ZOOM_MEETING"
    DELETE_ZOOM_MEETING = "DELETE_ZOOM_MEETING"
    REMINDER = "REMINDER"


class Job(Base):
    """Durable queued side effect, executed by the Celery job runner"""
    __tablename__ = "jobs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Stored as plain text so rows with an unknown type can still be loaded and failed
    type = Column(String(50), nullable=False)
    payload = Column(JSON, default=dict)
    status = Column(SQLEnum(JobStatus, name="job_status"), default=JobStatus.PENDING, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    error = Column(Text, nullable=True)

    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=True)
    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)

    scheduled_at = Column(UTCDateTime, default=utcnow, nullable=False)
    completed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("ix_jobs_status_scheduled", "status", "scheduled_at"),)

# ===== agendando/models/waitlist.py =====
from sqlalchemy import Column, String, ForeignKey, Uuid, UniqueConstraint
import uuid

from agendando.models.base import Base, UTCDateTime, utcnow


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_type_id = Column(
        Uuid(as_uuid=True), ForeignKey("event_types.id", ondelete="CASCADE"), nullable=False
    )
    guest_name = Column(String(200), nullable=False)
    guest_email = Column(String(255), nullable=False)

    created_at = Column(UTCDateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("event_type_id", "guest_email", name="uq_waitlist_event_email"),
    )

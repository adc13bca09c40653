# ===== agendando/models/event_type.py =====
from sqlalchemy import Column, String, Integer, Boolean, Text, Numeric, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from agendando.models.base import Base, UTCDateTime, utcnow


class EventType(Base):
    __tablename__ = "event_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=30)
    location = Column(String(255), nullable=True)  # "meet", "zoom" or free text
    color = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Paid events
    price = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    host = relationship("Host", back_populates="event_types")

    __table_args__ = (UniqueConstraint("host_id", "slug", name="uq_event_types_host_slug"),)

    @property
    def is_paid(self) -> bool:
        return self.price is not None and self.price > 0

    def __repr__(self):
        return f"<EventType(id={self.id}, slug={self.slug})>"

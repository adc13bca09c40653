# ===== agendando/models/scheduling_config.py =====
from sqlalchemy import Column, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid

from agendando.models.base import Base, UTCDateTime, utcnow


class SchedulingConfig(Base):
    __tablename__ = "scheduling_configs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(
        Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    buffer_before = Column(Integer, default=0, nullable=False)  # minutes
    buffer_after = Column(Integer, default=0, nullable=False)  # minutes
    min_notice_minutes = Column(Integer, default=60, nullable=False)
    max_days_in_advance = Column(Integer, default=60, nullable=False)

    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    host = relationship("Host", back_populates="config")

# ===== agendando/models/availability.py =====
from sqlalchemy import Column, String, Integer, Boolean, Date, ForeignKey, Uuid, Index
import uuid

from agendando.models.base import Base, UTCDateTime, utcnow


class WeeklyRule(Base):
    """Recurring weekly availability interval in the host's timezone"""
    __tablename__ = "weekly_rules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False)

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM

    created_at = Column(UTCDateTime, default=utcnow)

    __table_args__ = (Index("ix_weekly_rules_host_day", "host_id", "day_of_week"),)


class DateOverride(Base):
    """
    Exception for one calendar date. A blocked row closes the whole day;
    otherwise each row is one custom interval replacing the weekly rules.
    """
    __tablename__ = "date_overrides"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False)

    date = Column(Date, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)

    __table_args__ = (Index("ix_date_overrides_host_date", "host_id", "date"),)

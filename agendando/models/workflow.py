# ===== agendando/models/workflow.py =====
from sqlalchemy import Column, String, Boolean, Integer, ForeignKey, JSON, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
import uuid
import enum

from agendando.models.base import Base, UTCDateTime, utcnow


class TriggerType(str, enum.Enum):
    BOOKING_CREATED = "BOOKING_CREATED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_REMINDER_24H = "BOOKING_REMINDER_24H"
    BOOKING_REMINDER_1H = "BOOKING_REMINDER_1H"


class ActionType(str, enum.Enum):
    SEND_EMAIL = "SEND_EMAIL"
    SEND_WEBHOOK = "SEND_WEBHOOK"


class Workflow(Base):
    __tablename__ = "workflows"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow)

    triggers = relationship(
        "WorkflowTrigger", back_populates="workflow", cascade="all, delete-orphan"
    )
    actions = relationship(
        "WorkflowAction", back_populates="workflow", cascade="all, delete-orphan",
        order_by="WorkflowAction.order",
    )


class WorkflowTrigger(Base):
    __tablename__ = "workflow_triggers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workflow_id = Column(Uuid(as_uuid=True), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False)
    type = Column(SQLEnum(TriggerType, name="trigger_type"), nullable=False)

    workflow = relationship("Workflow", back_populates="triggers")


class WorkflowAction(Base):
    __tablename__ = "workflow_actions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workflow_id = Column(Uuid(as_uuid=True), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False)
    type = Column(SQLEnum(ActionType, name="action_type"), nullable=False)
    config = Column(JSON, nullable=False, default=dict)
    order = Column(Integer, nullable=False, default=0)

    workflow = relationship("Workflow", back_populates="actions")

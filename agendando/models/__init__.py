# ===== agendando/models/__init__.py =====
from .base import Base, UTCDateTime
from .host import Host
from .availability import WeeklyRule, DateOverride
from .scheduling_config import SchedulingConfig
from .event_type import EventType
from .booking import Booking, BookingStatus, ACTIVE_STATUSES
from .integration import Integration, IntegrationProvider
from .workflow import Workflow, WorkflowTrigger, WorkflowAction, TriggerType, ActionType
from .job import Job, JobStatus, JobType
from .waitlist import WaitlistEntry

__all__ = [
    "Base",
    "UTCDateTime",
    "Host",
    "WeeklyRule",
    "DateOverride",
    "SchedulingConfig",
    "EventType",
    "Booking",
    "BookingStatus",
    "ACTIVE_STATUSES",
    "Integration",
    "IntegrationProvider",
    "Workflow",
    "WorkflowTrigger",
    "WorkflowAction",
    "TriggerType",
    "ActionType",
    "Job",
    "JobStatus",
    "JobType",
    "WaitlistEntry",
]

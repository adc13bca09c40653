# ===== agendando/schemas/__init__.py =====
from .base import CamelModel

from .availability import (
    TimeInterval,
    WeeklyRuleIn,
    WeeklyRuleOut,
    WeeklyRulesUpdate,
    SchedulingConfigOut,
    SchedulingConfigUpdate,
    DateOverrideIn,
    DateOverrideOut,
)

from .event_type import (
    EventTypeCreate,
    EventTypeUpdate,
    EventTypeOut,
)

from .booking import (
    BookingCreate,
    CancelRequest,
    BookingOut,
    PublicBookingOut,
    PaymentRequiredOut,
)

from .public import (
    HostProfileOut,
    PublicProfileOut,
    PublicEventOut,
    SlotOut,
    WaitlistJoin,
)

from .workflow import (
    SendEmailConfig,
    SendWebhookConfig,
    ActionConfig,
    WorkflowCreate,
    WorkflowOut,
)

from .auth import (
    RegisterRequest,
    LoginRequest,
    HostAccountOut,
    TokenResponse,
)

# ===== agendando/models/integration.py =====
from sqlalchemy import (
    Column, String, Boolean, LargeBinary, ForeignKey, JSON, Uuid, UniqueConstraint, Enum as SQLEnum,
)
import uuid
import enum

from agendando.models.base import Base, UTCDateTime, utcnow


class IntegrationProvider(str, enum.Enum):
    GOOGLE_CALENDAR = "GOOGLE_CALENDAR"
    ZOOM = "ZOOM"
    MERCADOPAGO = "MERCADOPAGO"


class Integration(Base):
    __tablename__ = "integrations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False)

    provider = Column(SQLEnum(IntegrationProvider, name="integration_provider"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # OAuth tokens, Fernet-encrypted
    access_token_encrypted = Column(LargeBinary, nullable=True)
    refresh_token_encrypted = Column(LargeBinary, nullable=True)
    expires_at = Column(UTCDateTime, nullable=True)
    account_email = Column(String(255), nullable=True)

    # Provider-specific config (calendar_id, ...)
    provider_config = Column(JSON, default=dict)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint("host_id", "provider", name="uq_integrations_host_provider"),)

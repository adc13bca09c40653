# ===== agendando/models/host.py =====
from sqlalchemy import Column, String, Boolean, Uuid
from sqlalchemy.orm import relationship
from passlib.context import CryptContext
import uuid

from agendando.models.base import Base, UTCDateTime, utcnow

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Host(Base):
    """A person who publishes bookable event types"""
    __tablename__ = "hosts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(100), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")  # IANA name
    # NULL for hosts provisioned without a dashboard login
    hashed_password = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    event_types = relationship(
        "EventType", back_populates="host", cascade="all, delete-orphan",
        order_by="EventType.created_at",
    )
    config = relationship(
        "SchedulingConfig", back_populates="host", uselist=False, cascade="all, delete-orphan"
    )

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    def verify_password(self, plain_password: str) -> bool:
        """Verify a plain password against the hashed password."""
        if not self.hashed_password:
            return False
        return pwd_context.verify(plain_password, self.hashed_password)

    def __repr__(self):
        return f"<Host(id={self.id}, username={self.username})>"

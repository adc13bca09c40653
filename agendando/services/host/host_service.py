# ===== agendando/services/host/host_service.py =====
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agendando.config.settings import get_settings
from agendando.core.exceptions import InvalidInputException, UnauthorizedException
from agendando.models import Host, SchedulingConfig, WeeklyRule

settings = get_settings()
logger = logging.getLogger(__name__)

# Monday to Friday, Sunday = 0
DEFAULT_WORKDAYS = (1, 2, 3, 4, 5)
DEFAULT_DAY_START = "09:00"
DEFAULT_DAY_END = "17:00"


class HostService:
    """Host accounts: registration and password login"""

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Host]:
        return db.query(Host).filter(Host.email == email.lower().strip()).first()

    @staticmethod
    def register(
            db: Session,
            email: str,
            username: str,
            password: str,
            name: str,
            timezone: str = "UTC",
    ) -> Host:
        """
        Create a host with a default schedule: weekday 09:00-17:00 rules and
        a scheduling config (no buffers, 60 min notice, 60 days ahead).
        """
        email = email.lower().strip()
        if HostService.get_by_email(db, email):
            raise InvalidInputException("Email already registered", code="email_taken")
        if db.query(Host).filter(Host.username == username).first():
            raise InvalidInputException("Username already taken", code="username_taken")

        host = Host(
            email=email,
            username=username,
            name=name.strip(),
            timezone=timezone,
            hashed_password=Host.hash_password(password),
            is_active=True,
        )
        db.add(host)
        db.flush()

        db.add(SchedulingConfig(
            host_id=host.id,
            buffer_before=0,
            buffer_after=0,
            min_notice_minutes=settings.DEFAULT_MIN_NOTICE_MINUTES,
            max_days_in_advance=settings.DEFAULT_MAX_DAYS_IN_ADVANCE,
        ))
        for day in DEFAULT_WORKDAYS:
            db.add(WeeklyRule(
                host_id=host.id,
                day_of_week=day,
                start_time=DEFAULT_DAY_START,
                end_time=DEFAULT_DAY_END,
            ))

        try:
            db.commit()
        except IntegrityError:
            # lost a race on the unique email / username
            db.rollback()
            raise InvalidInputException("Email or username already registered", code="account_exists")

        db.refresh(host)
        logger.info(f"Registered host {host.username} ({host.id})")
        return host

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Host:
        """Same error for unknown email, wrong password and inactive host"""
        host = HostService.get_by_email(db, email)
        if not host or not host.is_active or not host.verify_password(password):
            logger.info(f"Failed login for {email}")
            raise UnauthorizedException("Invalid email or password")
        return host

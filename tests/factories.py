# tests/factories.py
"""Row builders shared by the test modules"""
import secrets
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from agendando.api.dependencies import create_access_token
from agendando.models import (
    Booking,
    BookingStatus,
    EventType,
    Host,
    IntegrationProvider,
    SchedulingConfig,
    WeeklyRule,
)
from agendando.services.availability.time_window import local_today
from agendando.services.integration.integration_service import IntegrationService

BUENOS_AIRES = "America/Argentina/Buenos_Aires"


def make_host(db, username="ana", tz=BUENOS_AIRES, email=None, name="Ana Gómez", **config) -> Host:
    host = Host(
        username=username,
        email=email or f"{username}@example.com",
        name=name,
        timezone=tz,
        is_active=True,
    )
    db.add(host)
    db.flush()
    db.add(SchedulingConfig(
        host_id=host.id,
        buffer_before=config.get("buffer_before", 0),
        buffer_after=config.get("buffer_after", 0),
        min_notice_minutes=config.get("min_notice_minutes", 60),
        max_days_in_advance=config.get("max_days_in_advance", 60),
    ))
    db.commit()
    return host


def make_event_type(db, host, slug="intro", duration=30, price=None, currency=None, location=None,
                    is_active=True, title="Intro call") -> EventType:
    event_type = EventType(
        host_id=host.id,
        title=title,
        slug=slug,
        duration_minutes=duration,
        location=location,
        is_active=is_active,
        price=Decimal(price) if price is not None else None,
        currency=currency,
    )
    db.add(event_type)
    db.commit()
    return event_type


def add_weekly_rule(db, host, day_of_week, start="09:00", end="17:00") -> WeeklyRule:
    rule = WeeklyRule(host_id=host.id, day_of_week=day_of_week, start_time=start, end_time=end)
    db.add(rule)
    db.commit()
    return rule


def connect_mercadopago(db, host, expires_at=None):
    return IntegrationService.connect(
        db,
        host.id,
        IntegrationProvider.MERCADOPAGO,
        access_token="APP_USR-test-token",
        refresh_token="TG-test-refresh",
        expires_at=expires_at or datetime.now(timezone.utc) + timedelta(days=30),
    )


def upcoming_day(tz=BUENOS_AIRES, days_ahead=7) -> date:
    """A host-calendar date safely inside the booking window"""
    return local_today(tz, datetime.now(timezone.utc)) + timedelta(days=days_ahead)


def auth_headers(host) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(host.id)})}"}


def make_booking(db, host, event_type, start, status=BookingStatus.CONFIRMED, guest_email="guest@example.com",
                 **fields) -> Booking:
    booking = Booking(
        host_id=host.id,
        event_type_id=event_type.id,
        guest_name="Guest",
        guest_email=guest_email,
        guest_timezone=host.timezone,
        start_time=start,
        end_time=start + timedelta(minutes=event_type.duration_minutes),
        status=status,
        cancellation_token=secrets.token_urlsafe(16),
        **fields,
    )
    db.add(booking)
    db.commit()
    return booking

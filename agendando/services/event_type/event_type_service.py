# ===== agendando/services/event_type/event_type_service.py =====
from typing import List, Tuple
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agendando.core.exceptions import InvalidInputException, NotFoundException
from agendando.models import Booking, EventType, Host

logger = logging.getLogger(__name__)

# Same message whether the host or the event is missing
EVENT_NOT_FOUND = "Event not found"

REQUIRED_FIELDS = ("title", "slug", "duration_minutes", "is_active")


class EventTypeService:

    @staticmethod
    def get_public_host(db: Session, username: str) -> Host:
        host = db.query(Host).filter_by(username=username, is_active=True).first()
        if not host:
            raise NotFoundException("Host not found")
        return host

    @staticmethod
    def get_public_event(db: Session, username: str, slug: str) -> Tuple[Host, EventType]:
        """Active host and active event type, or NotFound"""
        host = db.query(Host).filter_by(username=username, is_active=True).first()
        if not host:
            raise NotFoundException(EVENT_NOT_FOUND)

        event_type = db.query(EventType).filter_by(host_id=host.id, slug=slug, is_active=True).first()
        if not event_type:
            raise NotFoundException(EVENT_NOT_FOUND)
        return host, event_type

    @staticmethod
    def list_active(db: Session, host_id: UUID) -> List[EventType]:
        return db.query(EventType).filter_by(host_id=host_id, is_active=True).order_by(EventType.created_at).all()

    @staticmethod
    def list_for_host(db: Session, host_id: UUID) -> List[EventType]:
        return db.query(EventType).filter_by(host_id=host_id).order_by(EventType.created_at).all()

    @staticmethod
    def get_for_host(db: Session, host_id: UUID, event_type_id: UUID) -> EventType:
        event_type = db.query(EventType).filter_by(id=event_type_id, host_id=host_id).first()
        if not event_type:
            raise NotFoundException("Event type not found")
        return event_type

    @staticmethod
    def _check_slug_free(db: Session, host_id: UUID, slug: str, exclude_id: UUID = None) -> None:
        query = db.query(EventType).filter_by(host_id=host_id, slug=slug)
        if exclude_id is not None:
            query = query.filter(EventType.id != exclude_id)
        if query.first():
            raise InvalidInputException("Slug already in use", code="slug_taken", details={"slug": slug})

    @staticmethod
    def _check_price(price, currency) -> None:
        if price is not None and price > 0 and not currency:
            raise InvalidInputException("Currency is required for paid events")

    @staticmethod
    def create(db: Session, host_id: UUID, **fields) -> EventType:
        EventTypeService._check_slug_free(db, host_id, fields["slug"])
        EventTypeService._check_price(fields.get("price"), fields.get("currency"))

        event_type = EventType(host_id=host_id, **fields)
        db.add(event_type)
        db.commit()
        db.refresh(event_type)
        logger.info(f"Created event type {event_type.slug} for host {host_id}")
        return event_type

    @staticmethod
    def update(db: Session, host_id: UUID, event_type_id: UUID, **changes) -> EventType:
        event_type = EventTypeService.get_for_host(db, host_id, event_type_id)
        if changes.get("slug") and changes["slug"] != event_type.slug:
            EventTypeService._check_slug_free(db, host_id, changes["slug"], exclude_id=event_type.id)

        EventTypeService._check_price(
            changes.get("price", event_type.price),
            changes.get("currency", event_type.currency),
        )

        for field, value in changes.items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            setattr(event_type, field, value)

        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(event_type)
        return event_type

    @staticmethod
    def delete(db: Session, host_id: UUID, event_type_id: UUID) -> None:
        """Hard delete, or deactivate when bookings still reference it"""
        event_type = EventTypeService.get_for_host(db, host_id, event_type_id)
        has_bookings = db.query(Booking.id).filter_by(event_type_id=event_type.id).first() is not None

        if has_bookings:
            event_type.is_active = False
            logger.info(f"Deactivated event type {event_type.id} (has bookings)")
        else:
            db.delete(event_type)
        db.commit()

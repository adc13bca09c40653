# ===== agendando/services/availability/availability_service.py =====
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agendando.config.settings import get_settings
from agendando.core.exceptions import InvalidInputException
from agendando.models.availability import WeeklyRule, DateOverride
from agendando.models.scheduling_config import SchedulingConfig
from agendando.services.availability.time_window import day_of_week, parse_hhmm

logger = logging.getLogger(__name__)
settings = get_settings()

# Host-editable policy limits
CONFIG_LIMITS = {
    "buffer_before": (0, 120),
    "buffer_after": (0, 120),
    "min_notice_minutes": (0, 10080),
    "max_days_in_advance": (1, 365),
}


def validate_interval(start_time: str, end_time: str) -> None:
    """Both ends must be valid HH:MM and end must come after start"""
    if parse_hhmm(end_time) <= parse_hhmm(start_time):
        raise InvalidInputException(
            "End time must be after start time",
            details={"startTime": start_time, "endTime": end_time},
        )


class AvailabilityService:
    """Weekly rules, date overrides and scheduling policy for a host"""

    @staticmethod
    def resolve_day_intervals(db: Session, host_id: UUID, day: date) -> List[Tuple[str, str]]:
        """
        Availability intervals ("HH:MM", "HH:MM") for one calendar date in the
        host's timezone:

        1. any blocked override for the date -> no availability
        2. otherwise non-blocked overrides replace the weekly rules entirely
        3. otherwise the weekly rules for that weekday (Sunday=0)
        """
        overrides = db.query(DateOverride).filter(
            DateOverride.host_id == host_id,
            DateOverride.date == day,
        ).all()

        if any(o.is_blocked for o in overrides):
            return []

        if overrides:
            intervals = [
                (o.start_time, o.end_time)
                for o in overrides
                if o.start_time and o.end_time
            ]
        else:
            rules = db.query(WeeklyRule).filter(
                WeeklyRule.host_id == host_id,
                WeeklyRule.day_of_week == day_of_week(day),
            ).all()
            intervals = [(r.start_time, r.end_time) for r in rules]

        return sorted(intervals)

    # -- weekly rules -----------------------------------------------------

    @staticmethod
    def get_weekly_rules(db: Session, host_id: UUID) -> List[WeeklyRule]:
        return db.query(WeeklyRule).filter(
            WeeklyRule.host_id == host_id
        ).order_by(WeeklyRule.day_of_week, WeeklyRule.start_time).all()

    @staticmethod
    def replace_weekly_rules(db: Session, host_id: UUID, rules: Sequence[Dict]) -> List[WeeklyRule]:
        """Replace all of a host's weekly rules with the given set"""
        for rule in rules:
            if not 0 <= int(rule["day_of_week"]) <= 6:
                raise InvalidInputException("dayOfWeek must be between 0 and 6")
            validate_interval(rule["start_time"], rule["end_time"])

        try:
            db.query(WeeklyRule).filter(WeeklyRule.host_id == host_id).delete(
                synchronize_session=False
            )
            for rule in rules:
                db.add(WeeklyRule(
                    host_id=host_id,
                    day_of_week=int(rule["day_of_week"]),
                    start_time=rule["start_time"],
                    end_time=rule["end_time"],
                ))
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Replaced weekly rules for host {host_id}: {len(rules)} rules")
        return AvailabilityService.get_weekly_rules(db, host_id)

    # -- scheduling config --------------------------------------------------

    @staticmethod
    def get_or_create_config(db: Session, host_id: UUID) -> SchedulingConfig:
        config = db.query(SchedulingConfig).filter_by(host_id=host_id).first()
        if config:
            return config

        config = SchedulingConfig(
            host_id=host_id,
            buffer_before=0,
            buffer_after=0,
            min_notice_minutes=settings.DEFAULT_MIN_NOTICE_MINUTES,
            max_days_in_advance=settings.DEFAULT_MAX_DAYS_IN_ADVANCE,
        )
        db.add(config)
        try:
            db.commit()
        except IntegrityError:
            # Created concurrently by another request
            db.rollback()
            return db.query(SchedulingConfig).filter_by(host_id=host_id).one()

        db.refresh(config)
        return config

    @staticmethod
    def update_config(db: Session, host_id: UUID, **changes: Optional[int]) -> SchedulingConfig:
        """Partial update; None values are left untouched"""
        config = AvailabilityService.get_or_create_config(db, host_id)

        for field, value in changes.items():
            if value is None:
                continue
            if field not in CONFIG_LIMITS:
                raise InvalidInputException(f"Unknown setting: {field}")
            low, high = CONFIG_LIMITS[field]
            if not low <= value <= high:
                raise InvalidInputException(
                    f"{field} must be between {low} and {high}",
                    details={"field": field, "value": value},
                )
            setattr(config, field, value)

        db.commit()
        db.refresh(config)
        return config

    # -- date overrides -----------------------------------------------------

    @staticmethod
    def get_overrides(db: Session, host_id: UUID, from_date: Optional[date] = None) -> List[DateOverride]:
        query = db.query(DateOverride).filter(DateOverride.host_id == host_id)
        if from_date is not None:
            query = query.filter(DateOverride.date >= from_date)
        return query.order_by(DateOverride.date, DateOverride.start_time).all()

    @staticmethod
    def set_overrides(
            db: Session,
            host_id: UUID,
            day: date,
            is_blocked: bool,
            slots: Optional[Sequence[Dict]] = None,
    ) -> List[DateOverride]:
        """
        Replace the overrides for one date: a single blocked row, or one row
        per custom interval.
        """
        slots = list(slots or [])
        if not is_blocked:
            if not slots:
                raise InvalidInputException("At least one time slot is required when the date is not blocked")
            for slot in slots:
                validate_interval(slot["start_time"], slot["end_time"])

        try:
            db.query(DateOverride).filter(
                DateOverride.host_id == host_id,
                DateOverride.date == day,
            ).delete(synchronize_session=False)

            if is_blocked:
                db.add(DateOverride(host_id=host_id, date=day, is_blocked=True))
            else:
                for slot in slots:
                    db.add(DateOverride(
                        host_id=host_id,
                        date=day,
                        is_blocked=False,
                        start_time=slot["start_time"],
                        end_time=slot["end_time"],
                    ))
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Set overrides for host {host_id} on {day} (blocked={is_blocked})")
        return db.query(DateOverride).filter(
            DateOverride.host_id == host_id,
            DateOverride.date == day,
        ).order_by(DateOverride.start_time).all()

    @staticmethod
    def delete_overrides(db: Session, host_id: UUID, day: date) -> int:
        deleted = db.query(DateOverride).filter(
            DateOverride.host_id == host_id,
            DateOverride.date == day,
        ).delete(synchronize_session=False)
        db.commit()
        return deleted

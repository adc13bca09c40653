# ===== agendando/services/availability/slot_service.py =====
import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from agendando.core.exceptions import InvalidInputException
from agendando.models.booking import Booking, ACTIVE_STATUSES
from agendando.models.event_type import EventType
from agendando.models.host import Host
from agendando.models.scheduling_config import SchedulingConfig
from agendando.services.availability.availability_service import AvailabilityService
from agendando.services.availability.time_window import (
    day_bounds,
    from_instant,
    get_zone,
    local_today,
    overlaps,
    to_instant,
)

logger = logging.getLogger(__name__)


class SlotService:
    """Turns a host's availability into bookable slots"""

    @staticmethod
    def _within_window(host: Host, config: SchedulingConfig, day: date, now: datetime) -> bool:
        """Day is not in the past and not beyond the advance-booking window (host tz)"""
        today = local_today(host.timezone, now)
        last_day = local_today(host.timezone, now + timedelta(days=config.max_days_in_advance))
        return today <= day <= last_day

    @staticmethod
    def get_blocking_bookings(
            db: Session,
            host_id,
            range_start: datetime,
            range_end: datetime,
    ) -> List[Booking]:
        """Non-cancelled bookings intersecting [range_start, range_end)"""
        return db.query(Booking).filter(
            Booking.host_id == host_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_time < range_end,
            Booking.end_time > range_start,
        ).all()

    @staticmethod
    def generate_slots(
            db: Session,
            host: Host,
            event_type: EventType,
            config: SchedulingConfig,
            day: date,
            guest_timezone: str,
            now: Optional[datetime] = None,
    ) -> List[Dict]:
        """
        Bookable slots for one host calendar date.

        Returns a chronological list of {"time": "HH:MM" in the guest's
        timezone, "datetime": aware UTC start}. Each candidate is padded by
        the host's buffers before checking for overlap with existing bookings.
        """
        get_zone(guest_timezone)
        now = now or datetime.now(timezone.utc)

        if not SlotService._within_window(host, config, day, now):
            return []

        intervals = AvailabilityService.resolve_day_intervals(db, host.id, day)
        if not intervals:
            return []

        duration = timedelta(minutes=event_type.duration_minutes)
        buffer_before = timedelta(minutes=config.buffer_before)
        buffer_after = timedelta(minutes=config.buffer_after)
        min_allowed = now + timedelta(minutes=config.min_notice_minutes)

        day_start, day_end = day_bounds(day, host.timezone)
        bookings = SlotService.get_blocking_bookings(
            db, host.id, day_start - buffer_before, day_end + buffer_after
        )

        slots: Dict[datetime, Dict] = {}
        for start_hhmm, end_hhmm in intervals:
            cursor = to_instant(day, start_hhmm, host.timezone)
            interval_end = to_instant(day, end_hhmm, host.timezone)

            while cursor + duration <= interval_end:
                slot_start = cursor
                cursor += duration

                if slot_start < min_allowed:
                    continue

                padded_start = slot_start - buffer_before
                padded_end = slot_start + duration + buffer_after
                if any(
                    overlaps(padded_start, padded_end, b.start_time, b.end_time)
                    for b in bookings
                ):
                    continue

                _, guest_time = from_instant(slot_start, guest_timezone)
                slots[slot_start] = {"time": guest_time, "datetime": slot_start}

        return [slots[key] for key in sorted(slots)]

    @staticmethod
    def get_available_days(
            db: Session,
            host: Host,
            event_type: EventType,
            config: SchedulingConfig,
            month: str,
            now: Optional[datetime] = None,
    ) -> List[str]:
        """
        Dates ("YYYY-MM-DD") in the given "YYYY-MM" month that have at least
        one availability interval ending after the minimum-notice cutoff.
        Existing bookings are not consulted; a day listed here may still turn
        out fully booked once its slots are fetched.
        """
        try:
            year, month_number = (int(part) for part in month.split("-"))
            _, days_in_month = calendar.monthrange(year, month_number)
        except (ValueError, calendar.IllegalMonthError):
            raise InvalidInputException(f"Invalid month: {month!r}, expected YYYY-MM")

        now = now or datetime.now(timezone.utc)
        min_allowed = now + timedelta(minutes=config.min_notice_minutes)

        available = []
        for day_number in range(1, days_in_month + 1):
            day = date(year, month_number, day_number)
            if not SlotService._within_window(host, config, day, now):
                continue

            intervals = AvailabilityService.resolve_day_intervals(db, host.id, day)
            if any(to_instant(day, end, host.timezone) > min_allowed for _, end in intervals):
                available.append(day.isoformat())

        logger.debug(f"{len(available)} available days for {event_type.slug} in {month}")
        return available

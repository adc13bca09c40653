# ===== agendando/utils/ics.py =====
"""Minimal iCalendar (RFC 5545) invitation for booking emails"""
from datetime import datetime, timezone
from typing import Optional


def _format(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def build_ics(
        uid: str,
        start: datetime,
        end: datetime,
        summary: str,
        organizer_name: str,
        organizer_email: str,
        attendee_name: str,
        attendee_email: str,
        description: Optional[str] = None,
        location: Optional[str] = None,
        cancelled: bool = False,
) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Agendando//Booking//EN",
        "CALSCALE:GREGORIAN",
        f"METHOD:{'CANCEL' if cancelled else 'REQUEST'}",
        "BEGIN:VEVENT",
        f"UID:{uid}@agendando",
        f"DTSTAMP:{_format(datetime.now(timezone.utc))}",
        f"DTSTART:{_format(start)}",
        f"DTEND:{_format(end)}",
        f"SUMMARY:{_escape(summary)}",
        f"DESCRIPTION:{_escape(description or f'Meeting between {organizer_name} and {attendee_name}')}",
    ]
    if location:
        lines.append(f"LOCATION:{_escape(location)}")
    lines += [
        f"ORGANIZER;CN={_escape(organizer_name)}:mailto:{organizer_email}",
        f"ATTENDEE;CN={_escape(attendee_name)};RSVP=TRUE:mailto:{attendee_email}",
        f"STATUS:{'CANCELLED' if cancelled else 'CONFIRMED'}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"

# ===== agendando/services/email/email_service.py =====
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape, unescape
from typing import List, Optional, Tuple
import logging

import bleach
from bleach.sanitizer import ALLOWED_TAGS as BASE_TAGS

from agendando.config.settings import settings
from agendando.models import Booking, EventType, Host
from agendando.services.availability.time_window import get_zone

logger = logging.getLogger(__name__)

# Host-authored workflow emails may use basic formatting only
ALLOWED_TAGS = frozenset(BASE_TAGS) | {
    "p", "br", "div", "span", "h1", "h2", "h3", "h4", "hr", "u",
    "table", "thead", "tbody", "tr", "th", "td",
}
ALLOWED_ATTRIBUTES = {
    "a": ["href", "title", "target"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan"],
    "*": ["class"],
}
ALLOWED_PROTOCOLS = ["http", "https", "mailto"]


def sanitize_html(html_content: str) -> str:
    """Strip script-capable markup from host-authored email bodies"""
    return bleach.clean(
        html_content,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def strip_tags(text: str) -> str:
    """Plain text for headers such as the subject line"""
    return unescape(bleach.clean(text, tags=set(), attributes={}, strip=True, strip_comments=True)).strip()


def format_booking_time(booking: Booking, tz_name: str) -> str:
    local = booking.start_time.astimezone(get_zone(tz_name))
    return local.strftime("%A, %d %B %Y %H:%M") + f" ({tz_name})"


class EmailService:
    """Service for sending emails via SMTP"""

    @staticmethod
    def _get_smtp_connection():
        """Create and return SMTP connection"""
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except Exception as e:
            logger.error(f"Failed to connect to SMTP server: {e}")
            raise

    @staticmethod
    def send_email(
            to_email: str,
            subject: str,
            html_content: str,
            plain_text: Optional[str] = None,
            attachments: Optional[List[Tuple[str, str, str]]] = None,
    ) -> bool:
        """
        Send an email using SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML content of the email
            plain_text: Plain text version (fallback for non-HTML clients)
            attachments: (filename, text subtype, content) tuples

        Raises on delivery failure so the calling job can retry.
        """
        try:
            msg = MIMEMultipart('mixed')
            msg['Subject'] = subject
            msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
            msg['To'] = to_email

            body = MIMEMultipart('alternative')
            if plain_text:
                body.attach(MIMEText(plain_text, 'plain'))
            body.attach(MIMEText(html_content, 'html'))
            msg.attach(body)

            for filename, subtype, content in attachments or []:
                part = MIMEText(content, subtype, 'utf-8')
                part.add_header('Content-Disposition', 'attachment', filename=filename)
                msg.attach(part)

            server = EmailService._get_smtp_connection()
            server.sendmail(settings.EMAIL_FROM_ADDRESS, [to_email], msg.as_string())
            server.quit()

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise

    @staticmethod
    def send_booking_confirmation(
            booking: Booking,
            event_type: EventType,
            host: Host,
            ics_content: Optional[str] = None,
    ) -> bool:
        """Guest confirmation with cancellation link and calendar invite"""
        cancel_url = f"{settings.FRONTEND_URL}/cancel/{booking.cancellation_token}"
        when = format_booking_time(booking, booking.guest_timezone)
        meeting = (
            f'<p style="font-size: 16px;"><strong>Join:</strong> '
            f'<a href="{escape(booking.meeting_url)}">{escape(booking.meeting_url)}</a></p>'
            if booking.meeting_url else ""
        )

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="margin-top: 0;">Your booking is confirmed</h2>
            <p style="font-size: 16px;">Hi {escape(booking.guest_name)},</p>
            <p style="font-size: 16px;">
                <strong>{escape(event_type.title)}</strong> with {escape(host.name)}<br>
                {escape(when)} &middot; {event_type.duration_minutes} minutes
            </p>
            {meeting}
            <p style="font-size: 14px; color: #777;">
                Need to cancel? <a href="{cancel_url}">Cancel this booking</a>
            </p>
        </body>
        </html>
        """

        plain_text = (
            f"Hi {booking.guest_name},\n\n"
            f"Your booking for {event_type.title} with {host.name} is confirmed.\n"
            f"When: {when}\n"
            + (f"Join: {booking.meeting_url}\n" if booking.meeting_url else "")
            + f"\nCancel: {cancel_url}\n"
        )

        attachments = [("invite.ics", "calendar", ics_content)] if ics_content else None
        return EmailService.send_email(
            booking.guest_email,
            f"Confirmed: {event_type.title} with {host.name}",
            html_content,
            plain_text,
            attachments,
        )

    @staticmethod
    def send_booking_cancellation(booking: Booking, event_type: EventType, host: Host) -> bool:
        when = format_booking_time(booking, booking.guest_timezone)
        reason = (
            f'<p style="font-size: 16px;">Reason: {escape(booking.cancel_reason)}</p>'
            if booking.cancel_reason else ""
        )

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="margin-top: 0;">Booking cancelled</h2>
            <p style="font-size: 16px;">Hi {escape(booking.guest_name)},</p>
            <p style="font-size: 16px;">
                Your booking for <strong>{escape(event_type.title)}</strong> with {escape(host.name)}
                on {escape(when)} has been cancelled.
            </p>
            {reason}
            <p style="font-size: 14px;">
                <a href="{settings.FRONTEND_URL}/{host.username}/{event_type.slug}">Book another time</a>
            </p>
        </body>
        </html>
        """

        return EmailService.send_email(
            booking.guest_email,
            f"Cancelled: {event_type.title} with {host.name}",
            html_content,
        )

    @staticmethod
    def waitlist_notification_content(guest_name: str, event_type: EventType, host: Host) -> Tuple[str, str]:
        """Subject and HTML body telling a waitlisted guest a spot opened up"""
        booking_url = f"{settings.FRONTEND_URL}/{host.username}/{event_type.slug}"
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <p style="font-size: 16px;">Hi {escape(guest_name)},</p>
            <p style="font-size: 16px;">
                A spot just opened up for <strong>{escape(event_type.title)}</strong> with {escape(host.name)}.
            </p>
            <p style="font-size: 16px;"><a href="{booking_url}">Pick a time</a></p>
        </body>
        </html>
        """
        return f"A spot opened up: {event_type.title}", html_content

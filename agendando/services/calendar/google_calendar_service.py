# ===== agendando/services/calendar/google_calendar_service.py =====
from datetime import timedelta, datetime, timezone
from typing import Optional, Tuple
import logging

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from sqlalchemy.orm import Session

from agendando.config.settings import get_settings
from agendando.models import Booking, EventType, Host, Integration
from agendando.services.integration.integration_service import IntegrationService

settings = get_settings()

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"


class GoogleCalendarService:
    SCOPES = ['https://www.googleapis.com/auth/calendar']

    def get_valid_credentials(self, integration: Integration, db: Session) -> Credentials:
        """Get valid credentials, refreshing if necessary"""
        now = datetime.now(timezone.utc)
        if integration.expires_at is None or integration.expires_at <= now + timedelta(minutes=5):
            return self.refresh_access_token(integration, db)
        return Credentials(
            token=IntegrationService.get_access_token(integration),
            refresh_token=IntegrationService.get_refresh_token(integration),
            token_uri=TOKEN_URI,
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
        )

    def refresh_access_token(self, integration: Integration, db: Session) -> Credentials:
        """Refresh expired access token using refresh token"""
        credentials = Credentials(
            token=None,
            refresh_token=IntegrationService.get_refresh_token(integration),
            token_uri=TOKEN_URI,
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
        )
        credentials.refresh(Request())

        expiry = credentials.expiry
        if expiry is not None and expiry.tzinfo is None:
            # google-auth reports naive UTC
            expiry = expiry.replace(tzinfo=timezone.utc)
        IntegrationService.store_tokens(integration, credentials.token, expires_at=expiry)
        db.commit()
        return credentials

    def _calendar_id(self, integration: Integration) -> str:
        return (integration.provider_config or {}).get("selected_calendar_id", "primary")

    def create_event(
            self,
            db: Session,
            integration: Integration,
            booking: Booking,
            event_type: EventType,
            host: Host,
    ) -> Tuple[str, Optional[str]]:
        """
        Insert the booking into the host's calendar.

        Returns (event id, Meet link). A Meet conference is requested when
        the event type's location is "meet".
        """
        credentials = self.get_valid_credentials(integration, db)
        service = build('calendar', 'v3', credentials=credentials, cache_discovery=False)

        body = {
            'summary': f"{event_type.title} with {booking.guest_name}",
            'description': booking.notes or '',
            'start': {'dateTime': booking.start_time.isoformat(), 'timeZone': 'UTC'},
            'end': {'dateTime': booking.end_time.isoformat(), 'timeZone': 'UTC'},
            'attendees': [
                {'email': booking.guest_email, 'displayName': booking.guest_name},
                {'email': host.email, 'displayName': host.name, 'organizer': True},
            ],
        }
        if event_type.location == "meet":
            body['conferenceData'] = {
                'createRequest': {
                    'requestId': str(booking.id),
                    'conferenceSolutionKey': {'type': 'hangoutsMeet'},
                }
            }
        elif event_type.location:
            body['location'] = event_type.location

        event = service.events().insert(
            calendarId=self._calendar_id(integration),
            body=body,
            conferenceDataVersion=1,
            sendUpdates='all',
        ).execute()

        logger.info(f"Created Google Calendar event {event['id']} for booking {booking.id}")
        return event['id'], event.get('hangoutLink')

    def delete_event(self, db: Session, integration: Integration, event_id: str) -> None:
        credentials = self.get_valid_credentials(integration, db)
        service = build('calendar', 'v3', credentials=credentials, cache_discovery=False)
        try:
            service.events().delete(
                calendarId=self._calendar_id(integration),
                eventId=event_id,
                sendUpdates='all',
            ).execute()
        except HttpError as e:
            if e.resp.status in (404, 410):
                logger.info(f"Google Calendar event {event_id} already gone")
                return
            raise
        logger.info(f"Deleted Google Calendar event {event_id}")

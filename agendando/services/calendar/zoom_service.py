# ===== agendando/services/calendar/zoom_service.py =====
from datetime import datetime, timedelta, timezone
from typing import Tuple
import logging

import httpx
from sqlalchemy.orm import Session

from agendando.config.settings import get_settings
from agendando.models import Booking, EventType, Integration
from agendando.services.integration.integration_service import IntegrationService

settings = get_settings()
logger = logging.getLogger(__name__)

ZOOM_API_URL = "https://api.zoom.us/v2"
ZOOM_TOKEN_URL = "https://zoom.us/oauth/token"


class ZoomService:
    """Creates and deletes Zoom meetings with the host's OAuth token"""

    def __init__(self, http_client: httpx.Client = None):
        self.http_client = http_client or httpx.Client(timeout=15.0)

    def get_valid_token(self, integration: Integration, db: Session) -> str:
        now = datetime.now(timezone.utc)
        if integration.expires_at and integration.expires_at > now + timedelta(minutes=5):
            return IntegrationService.get_access_token(integration)

        response = self.http_client.post(
            ZOOM_TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "refresh_token": IntegrationService.get_refresh_token(integration),
            },
            auth=(settings.ZOOM_CLIENT_ID, settings.ZOOM_CLIENT_SECRET),
        )
        response.raise_for_status()
        tokens = response.json()

        IntegrationService.store_tokens(
            integration,
            tokens["access_token"],
            tokens.get("refresh_token"),
            now + timedelta(seconds=int(tokens.get("expires_in", 3600))),
        )
        db.commit()
        return tokens["access_token"]

    def create_meeting(
            self,
            db: Session,
            integration: Integration,
            booking: Booking,
            event_type: EventType,
    ) -> Tuple[str, str]:
        """Returns (meeting id, join url)"""
        token = self.get_valid_token(integration, db)
        response = self.http_client.post(
            f"{ZOOM_API_URL}/users/me/meetings",
            headers={"Authorization": f"Bearer {token}"},
            json={
                "topic": f"{event_type.title} with {booking.guest_name}",
                "type": 2,  # scheduled
                "start_time": booking.start_time.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "duration": event_type.duration_minutes,
                "timezone": "UTC",
                "agenda": booking.notes or "",
            },
        )
        response.raise_for_status()
        meeting = response.json()

        logger.info(f"Created Zoom meeting {meeting['id']} for booking {booking.id}")
        return str(meeting["id"]), meeting["join_url"]

    def delete_meeting(self, db: Session, integration: Integration, meeting_id: str) -> None:
        token = self.get_valid_token(integration, db)
        response = self.http_client.delete(
            f"{ZOOM_API_URL}/meetings/{meeting_id}",
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.status_code == 404:
            logger.info(f"Zoom meeting {meeting_id} already gone")
            return
        response.raise_for_status()
        logger.info(f"Deleted Zoom meeting {meeting_id}")

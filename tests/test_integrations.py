import json
from datetime import datetime, timedelta, timezone

import httpx

from agendando.models import IntegrationProvider, Job, JobType, WaitlistEntry
from agendando.services.calendar.zoom_service import ZoomService
from agendando.services.integration.integration_service import IntegrationService
from agendando.services.waitlist.waitlist_service import WaitlistService

from factories import make_booking, make_event_type, make_host

START = datetime(2030, 5, 6, 15, 0, tzinfo=timezone.utc)


def connect_zoom(db, host, expires_at):
    return IntegrationService.connect(
        db, host.id, IntegrationProvider.ZOOM,
        access_token="zoom-access",
        refresh_token="zoom-refresh",
        expires_at=expires_at,
    )


class TestZoom:

    def test_create_meeting_with_live_token(self, db):
        host = make_host(db)
        event_type = make_event_type(db, host, location="zoom")
        booking = make_booking(db, host, event_type, START)
        integration = connect_zoom(db, host, datetime.now(timezone.utc) + timedelta(hours=1))
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={"id": 987, "join_url": "https://zoom.us/j/987"})

        service = ZoomService(http_client=httpx.Client(transport=httpx.MockTransport(handler)))
        meeting_id, join_url = service.create_meeting(db, integration, booking, event_type)

        assert (meeting_id, join_url) == ("987", "https://zoom.us/j/987")
        assert requests[0].headers["Authorization"] == "Bearer zoom-access"
        body = json.loads(requests[0].content)
        assert body["start_time"] == "2030-05-06T15:00:00Z"
        assert body["duration"] == 30

    def test_expired_token_is_refreshed_and_stored(self, db):
        host = make_host(db)
        integration = connect_zoom(db, host, datetime.now(timezone.utc) - timedelta(minutes=1))

        def handler(request):
            assert request.url.path == "/oauth/token"
            return httpx.Response(200, json={"access_token": "fresh", "refresh_token": "r2", "expires_in": 3600})

        service = ZoomService(http_client=httpx.Client(transport=httpx.MockTransport(handler)))

        assert service.get_valid_token(integration, db) == "fresh"
        assert IntegrationService.get_access_token(integration) == "fresh"
        assert IntegrationService.get_refresh_token(integration) == "r2"

    def test_deleting_a_missing_meeting_is_fine(self, db):
        host = make_host(db)
        integration = connect_zoom(db, host, datetime.now(timezone.utc) + timedelta(hours=1))
        service = ZoomService(http_client=httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(404))
        ))

        service.delete_meeting(db, integration, "987")


class TestWaitlist:

    def test_rejoining_updates_the_existing_entry(self, db):
        host = make_host(db)
        event_type = make_event_type(db, host)

        first = WaitlistService.join(db, event_type, "Lu", "lu@Example.COM")
        second = WaitlistService.join(db, event_type, "Lucía", "lu@example.com")

        assert first.id == second.id
        assert db.query(WaitlistEntry).count() == 1
        assert second.guest_name == "Lucía"

    def test_notify_queues_one_email_per_guest(self, db):
        host = make_host(db)
        event_type = make_event_type(db, host)
        WaitlistService.join(db, event_type, "Lu", "lu@example.com")
        WaitlistService.join(db, event_type, "Max", "max@example.com")

        assert WaitlistService.notify(db, event_type, host) == 2

        recipients = sorted(job.payload["to"] for job in db.query(Job).filter_by(type=JobType.SEND_EMAIL.value))
        assert recipients == ["lu@example.com", "max@example.com"]

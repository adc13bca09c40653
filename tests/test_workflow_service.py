import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from agendando.core.exceptions import NotFoundException
from agendando.models import Job, JobType, TriggerType
from agendando.schemas.workflow import SendEmailConfig, SendWebhookConfig
from agendando.services.email.email_service import sanitize_html, strip_tags
from agendando.services.webhook.webhook_service import WebhookService
from agendando.services.workflow.workflow_service import WorkflowService, booking_context, render_template
from agendando.utils.ics import build_ics

from factories import make_booking, make_event_type, make_host

START = datetime(2030, 5, 6, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def booking(db):
    host = make_host(db)
    event_type = make_event_type(db, host, title="Intro call", duration=45)
    return make_booking(db, host, event_type, START)


class TestTemplates:

    def test_known_placeholders_are_replaced(self, booking):
        context = booking_context(booking, booking.event_type, booking.host)

        rendered = render_template(
            "{{guestName}} <{{guestEmail}}> meets {{hostName}}: {{eventTitle}} at {{startTime}} ({{duration}} min)",
            context,
        )
        assert rendered == "Guest <guest@example.com> meets Ana Gómez: Intro call at 2030-05-06T15:00:00Z (45 min)"

    def test_unknown_placeholders_are_left_alone(self):
        assert render_template("Hi {{nickname}}", {"guestName": "Lu"}) == "Hi {{nickname}}"


class TestTriggers:

    def test_inactive_workflows_do_not_fire(self, db, booking):
        WorkflowService.create_workflow(
            db, booking.host_id, "Off",
            triggers=[TriggerType.BOOKING_CREATED],
            actions=[SendEmailConfig(to="guest", subject="s", body="b")],
            is_active=False,
        )

        assert WorkflowService.trigger(db, TriggerType.BOOKING_CREATED, booking) == 0

    def test_webhook_action_queues_delivery(self, db, booking):
        WorkflowService.create_workflow(
            db, booking.host_id, "Zapier",
            triggers=[TriggerType.BOOKING_CANCELLED],
            actions=[SendWebhookConfig(url="https://hooks.example.com/x", method="PUT")],
        )

        assert WorkflowService.trigger(db, TriggerType.BOOKING_CANCELLED, booking) == 1

        job = db.query(Job).filter_by(type=JobType.SEND_WEBHOOK.value).one()
        assert job.payload["url"] == "https://hooks.example.com/x"
        assert job.payload["method"] == "PUT"
        assert job.payload["payload"]["data"]["guestEmail"] == "guest@example.com"

    def test_other_triggers_are_ignored(self, db, booking):
        WorkflowService.create_workflow(
            db, booking.host_id, "Created only",
            triggers=[TriggerType.BOOKING_CREATED],
            actions=[SendEmailConfig(to="host", subject="s", body="b")],
        )

        assert WorkflowService.trigger(db, TriggerType.BOOKING_CANCELLED, booking) == 0

    def test_reminders_already_due_are_skipped(self, db, booking):
        WorkflowService.create_workflow(
            db, booking.host_id, "Reminders",
            triggers=[TriggerType.BOOKING_REMINDER_24H, TriggerType.BOOKING_REMINDER_1H],
            actions=[SendEmailConfig(to="guest", subject="s", body="b")],
        )

        # 2 hours before the meeting only the 1h reminder is still ahead
        count = WorkflowService.schedule_reminders(db, booking, now=START - timedelta(hours=2))

        assert count == 1
        job = db.query(Job).filter_by(type=JobType.REMINDER.value).one()
        assert job.payload["trigger_type"] == "BOOKING_REMINDER_1H"
        assert job.scheduled_at == START - timedelta(hours=1)

    def test_delete_is_scoped_to_host(self, db, booking):
        workflow = WorkflowService.create_workflow(
            db, booking.host_id, "Mine",
            triggers=[TriggerType.BOOKING_CREATED],
            actions=[SendEmailConfig(to="host", subject="s", body="b")],
        )
        other = make_host(db, username="beto")

        with pytest.raises(NotFoundException):
            WorkflowService.delete_workflow(db, other.id, workflow.id)
        WorkflowService.delete_workflow(db, booking.host_id, workflow.id)
        assert WorkflowService.list_workflows(db, booking.host_id) == []


class TestWebhookDelivery:

    def test_delivers_json_payload(self):
        received = []

        def handler(request):
            received.append((request.method, json.loads(request.content)))
            return httpx.Response(204)

        service = WebhookService(http_client=httpx.Client(transport=httpx.MockTransport(handler)))
        payload = WebhookService.build_payload("booking", "host-1", {"id": "b-1"})

        assert service.deliver("https://hooks.example.com/x", "PATCH", payload) == 204
        assert received[0][0] == "PATCH"
        assert received[0][1]["data"] == {"id": "b-1"}

    def test_error_status_raises_for_retry(self):
        service = WebhookService(http_client=httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        ))

        with pytest.raises(RuntimeError):
            service.deliver("https://hooks.example.com/x", "POST", {"event": "booking"})


class TestEmailContent:

    def test_sanitize_strips_scripts_and_handlers(self):
        html = '<p onclick="steal()">Hi</p><script>alert(1)</script><a href="javascript:evil()">x</a>'

        cleaned = sanitize_html(html)

        assert "script" not in cleaned
        assert "onclick" not in cleaned
        assert "javascript:" not in cleaned
        assert "<p>Hi</p>" in cleaned

    def test_sanitize_handles_unquoted_handlers_and_encoded_urls(self):
        cleaned = sanitize_html(
            '<svg/onload=alert(1)><a href="java&#x73;cript:alert(1)">x</a><iframe src="https://evil.test"></iframe>'
        )

        assert "onload" not in cleaned
        assert "cript:" not in cleaned
        assert "iframe" not in cleaned
        assert "<a>x</a>" in cleaned

    def test_sanitize_keeps_safe_links(self):
        cleaned = sanitize_html('<a href="https://agendando.test/b/1" title="Details">See booking</a>')

        assert cleaned == '<a href="https://agendando.test/b/1" title="Details">See booking</a>'

    def test_strip_tags(self):
        assert strip_tags("<b>Reminder</b>: tomorrow ") == "Reminder: tomorrow"
        assert strip_tags("Q&A <i>session</i>") == "Q&A session"

    def test_ics_invite(self):
        ics = build_ics(
            uid="abc",
            start=START,
            end=START + timedelta(minutes=30),
            summary="Intro, call",
            organizer_name="Ana",
            organizer_email="ana@example.com",
            attendee_name="Lu",
            attendee_email="lu@example.com",
        )

        assert "DTSTART:20300506T150000Z" in ics
        assert "DTEND:20300506T153000Z" in ics
        assert "SUMMARY:Intro\\, call" in ics
        assert ics.endswith("END:VCALENDAR\r\n")


def test_health(client):
    assert client.get("/health/").json()["status"] == "healthy"

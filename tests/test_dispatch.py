# tests for the side-channel dispatchers: analytics tracking and sms
# both report failures as values, neither raises into the caller

import asyncio
import json

import httpx
import pytest

from practice_dashboard.config import settings
from practice_dashboard.models.session import SessionContext
from practice_dashboard.services.dispatch import (
    SMS_BUSY_MESSAGE,
    SmsDispatcher,
    TrackingDispatcher,
    build_tracking_event,
    describe_user_agent,
    report_link,
)
from tests.conftest import SMS_URL, TRACKING_URL

SESSION = SessionContext(signedIn=True, userId="u1", userEmail="tam@neurolens.test")

IPHONE_SAFARI = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
WINDOWS_CHROME = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
WINDOWS_EDGE = WINDOWS_CHROME + " Edg/120.0.0.0"
LINUX_FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"


class TestUserAgent:
    """coarse device/os/browser descriptors"""

    @pytest.mark.parametrize("ua,expected", [
        (IPHONE_SAFARI, ("mobile", "iOS", "Safari")),
        (WINDOWS_CHROME, ("desktop", "Windows", "Chrome")),
        (WINDOWS_EDGE, ("desktop", "Windows", "Edge")),
        (LINUX_FIREFOX, ("desktop", "Linux", "Firefox")),
        ("", ("unknown", "unknown", "unknown")),
        (None, ("unknown", "unknown", "unknown")),
    ])
    def test_describe(self, ua, expected):
        assert describe_user_agent(ua) == expected


class TestTracking:
    """fire-and-forget analytics pings"""

    def test_build_event(self):
        event = build_tracking_event("page_view", SESSION, WINDOWS_CHROME, practice_id="p1")
        body = event.model_dump(by_alias=True)
        assert body["eventType"] == "page_view"
        assert body["userId"] == "u1"
        assert body["userEmail"] == "tam@neurolens.test"
        assert body["practiceId"] == "p1"
        assert body["os"] == "Windows"
        assert "T" in body["timestamp"]
        assert body["timestamp"].endswith("+00:00")

    async def test_posts_event(self, tracking_dispatcher, workflow):
        event = build_tracking_event("page_view", SESSION, WINDOWS_CHROME)
        assert await tracking_dispatcher.track(event) is True
        bodies = workflow.bodies(TRACKING_URL)
        assert len(bodies) == 1
        assert bodies[0]["eventType"] == "page_view"
        assert bodies[0]["practiceId"] is None

    async def test_non_2xx_is_logged_not_raised(self, tracking_dispatcher, workflow, caplog):
        workflow.reply(TRACKING_URL, {"error": "nope"}, status_code=500)
        result = await tracking_dispatcher.track(build_tracking_event("page_view", SESSION))
        assert result is False
        assert "500" in caplog.text

    async def test_transport_error_is_swallowed(self, tracking_dispatcher, workflow):
        workflow.fail(TRACKING_URL, httpx.ConnectError("down"))
        assert await tracking_dispatcher.track(build_tracking_event("page_view", SESSION)) is False

    async def test_disabled_without_url(self, tracking_dispatcher, workflow, monkeypatch):
        monkeypatch.setattr(settings, "TRACKING_API_URL", "")
        assert await tracking_dispatcher.track(build_tracking_event("page_view", SESSION)) is False
        assert workflow.requests == []


class TestSms:
    """sms dispatch with a single in-flight request"""

    async def test_send_success(self, sms_dispatcher, workflow):
        result = await sms_dispatcher.send("+15555550101", "https://reports.test/public/p1")
        assert result.success is True
        assert workflow.bodies(SMS_URL) == [{
            "recipientPhoneNumber": "+15555550101",
            "reportLink": "https://reports.test/public/p1",
        }]
        assert sms_dispatcher.busy is False

    async def test_backend_reports_failure(self, sms_dispatcher, workflow):
        workflow.reply(SMS_URL, {"success": False, "error": "Invalid number"})
        result = await sms_dispatcher.send("+1", "https://reports.test/public/p1")
        assert result.success is False
        assert result.error == "Invalid number"

    async def test_backend_unreachable(self, sms_dispatcher, workflow):
        workflow.fail(SMS_URL, httpx.ConnectError("refused"))
        result = await sms_dispatcher.send("+15555550101", "https://reports.test/public/p1")
        assert result.success is False
        assert "SMS service" in result.error
        assert sms_dispatcher.busy is False

    async def test_backend_error_status_with_bad_body(self, sms_dispatcher, workflow):
        workflow.reply(SMS_URL, text="gateway exploded", status_code=502)
        result = await sms_dispatcher.send("+15555550101", "https://reports.test/public/p1")
        assert result.success is False
        assert "502" in result.error

    async def test_second_send_rejected_while_first_in_flight(self):
        sent = []
        release = asyncio.Event()

        async def slow_backend(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            await release.wait()
            return httpx.Response(200, json={"success": True})

        dispatcher = SmsDispatcher(transport=httpx.MockTransport(slow_backend))

        first = asyncio.create_task(dispatcher.send("+15555550101", "https://reports.test/public/p1"))
        while not sent:
            await asyncio.sleep(0)
        assert dispatcher.busy is True

        second = await dispatcher.send("+15555550103", "https://reports.test/public/p3")
        assert second.success is False
        assert second.error == SMS_BUSY_MESSAGE

        release.set()
        first_result = await first
        assert first_result.success is True
        assert len(sent) == 1
        assert dispatcher.busy is False

    async def test_flag_released_after_send(self, sms_dispatcher, workflow):
        await sms_dispatcher.send("+15555550101", "https://reports.test/public/p1")
        await sms_dispatcher.send("+15555550101", "https://reports.test/public/p1")
        assert len(workflow.calls(SMS_URL)) == 2

    def test_report_link_points_at_public_dashboard(self):
        assert report_link("practice-001") == "https://reports.test/public/practice-001"

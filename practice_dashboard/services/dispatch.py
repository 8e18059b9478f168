# side-channel dispatchers: analytics tracking and sms report delivery
# neither one can fail a page; errors are logged and reported back as values

import logging
import re
from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import ValidationError

from practice_dashboard.config import settings
from practice_dashboard.models.dispatch import SmsRequest, SmsResult, TrackingEvent
from practice_dashboard.models.session import SessionContext

logger = logging.getLogger(__name__)

SMS_BUSY_MESSAGE = "An SMS is already being sent. Please wait for it to finish."

# order matters: first match wins
_OS_PATTERNS = [
    ("iOS", re.compile(r"iPhone|iPad|iPod")),
    ("Android", re.compile(r"Android")),
    ("Windows", re.compile(r"Windows")),
    ("macOS", re.compile(r"Mac OS X|Macintosh")),
    ("Linux", re.compile(r"Linux")),
]
_BROWSER_PATTERNS = [
    ("Edge", re.compile(r"Edg(e|A|iOS)?/")),
    ("Opera", re.compile(r"OPR/|Opera")),
    ("Chrome", re.compile(r"Chrome/|CriOS/")),
    ("Firefox", re.compile(r"Firefox/|FxiOS/")),
    ("Safari", re.compile(r"Safari/")),
]


def describe_user_agent(user_agent: Optional[str]) -> tuple[str, str, str]:
    """coarse (device, os, browser) from a User-Agent header"""
    ua = user_agent or ""
    if not ua:
        return "unknown", "unknown", "unknown"

    if re.search(r"iPad|Tablet", ua):
        device = "tablet"
    elif re.search(r"Mobi|iPhone|Android", ua):
        device = "mobile"
    else:
        device = "desktop"

    os_name = next((name for name, pattern in _OS_PATTERNS if pattern.search(ua)), "unknown")
    browser = next((name for name, pattern in _BROWSER_PATTERNS if pattern.search(ua)), "unknown")
    return device, os_name, browser


def build_tracking_event(
    event_type: str,
    session: SessionContext,
    user_agent: Optional[str] = None,
    practice_id: Optional[str] = None,
) -> TrackingEvent:
    device, os_name, browser = describe_user_agent(user_agent)
    return TrackingEvent(
        eventType=event_type,
        userId=session.user_id,
        userEmail=session.user_email,
        practiceId=practice_id,
        device=device,
        os=os_name,
        browser=browser,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


class TrackingDispatcher:
    """fire-and-forget analytics pings, run as background tasks"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    async def track(self, event: TrackingEvent) -> bool:
        """post one event; returns whether the sink accepted it"""
        if not settings.TRACKING_API_URL:
            logger.debug(f"Tracking disabled, dropping {event.event_type} event")
            return False

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=settings.REQUEST_TIMEOUT_SECONDS,
            ) as client:
                response = await client.post(
                    settings.TRACKING_API_URL, json=event.model_dump(by_alias=True),
                )
        except httpx.HTTPError as e:
            logger.warning(f"Tracking request failed: {e}")
            return False

        if not response.is_success:
            logger.warning(f"Tracking sink answered {response.status_code} {response.reason_phrase}")
            return False
        return True


class SmsDispatcher:
    """sends report links by sms, one request at a time process-wide"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    async def send(self, phone_number: str, report_link: str) -> SmsResult:
        """post to the sms backend. a call made while another is outstanding
        is refused without touching the network."""
        if self._in_flight:
            logger.info("SMS send refused, another send is still in flight")
            return SmsResult(success=False, error=SMS_BUSY_MESSAGE)

        # no await between the check and the set, so this is atomic on the event loop
        self._in_flight = True
        try:
            return await self._post(SmsRequest(recipientPhoneNumber=phone_number, reportLink=report_link))
        finally:
            self._in_flight = False

    async def _post(self, body: SmsRequest) -> SmsResult:
        url = f"{settings.SMS_API_BASE_URL.rstrip('/')}/api/send-sms"
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=settings.REQUEST_TIMEOUT_SECONDS,
            ) as client:
                response = await client.post(url, json=body.model_dump(by_alias=True))
        except httpx.HTTPError as e:
            logger.warning(f"SMS backend unreachable: {e}")
            return SmsResult(success=False, error="Could not reach the SMS service.")

        try:
            result = SmsResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"SMS backend returned {response.status_code} with unexpected body: {e}")
            return SmsResult(
                success=False,
                error=f"SMS service error: {response.status_code} {response.reason_phrase}",
            )

        if not response.is_success and result.success:
            result = SmsResult(success=False, error=f"SMS service error: {response.status_code}")
        if result.success:
            logger.info("SMS report sent")
        else:
            logger.warning(f"SMS backend reported failure: {result.error}")
        return result


def report_link(practice_id: str) -> str:
    """public, no-login dashboard url for a practice"""
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/public/{practice_id}"


# singleton instances
tracking_dispatcher = TrackingDispatcher()
sms_dispatcher = SmsDispatcher()


async def get_tracking_dispatcher() -> TrackingDispatcher:
    return tracking_dispatcher


async def get_sms_dispatcher() -> SmsDispatcher:
    return sms_dispatcher

# shared fixtures for dashboard tests
# provides a stubbed workflow gateway, session tokens, and httpx test clients

import copy
import json
import os
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

# identity key and endpoints must be in place before the app reads its settings
_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
PRIVATE_KEY_PEM = _KEY.private_bytes(
    serialization.Encoding.PEM,
    serialization.PrivateFormat.PKCS8,
    serialization.NoEncryption(),
).decode()
PUBLIC_KEY_PEM = _KEY.public_key().public_bytes(
    serialization.Encoding.PEM,
    serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()

DASHBOARD_URL = "http://workflow.test/dashboard"
CUSTOMERS_URL = "http://workflow.test/customers"
TRACKING_URL = "http://workflow.test/track"
SMS_BASE_URL = "http://sms.test"
SMS_URL = f"{SMS_BASE_URL}/api/send-sms"

os.environ["IDENTITY_PUBLIC_KEY"] = PUBLIC_KEY_PEM
os.environ["IDENTITY_JWT_ALGORITHM"] = "RS256"
os.environ["DASHBOARD_API_URL"] = DASHBOARD_URL
os.environ["CUSTOMERS_API_URL"] = CUSTOMERS_URL
os.environ["TRACKING_API_URL"] = TRACKING_URL
os.environ["SMS_API_BASE_URL"] = SMS_BASE_URL
os.environ["PUBLIC_BASE_URL"] = "https://reports.test"

from httpx import AsyncClient, ASGITransport  # noqa: E402

from practice_dashboard.main import app  # noqa: E402
from practice_dashboard.services.dispatch import (  # noqa: E402
    SmsDispatcher,
    TrackingDispatcher,
    get_sms_dispatcher,
    get_tracking_dispatcher,
)
from practice_dashboard.services.gateway import GatewayClient, get_gateway  # noqa: E402


# test identity

USER_ID = "user_2abc"
USER_EMAIL = "tam@neurolens.test"
PRACTICE_ID = "practice-001"


def make_token(sub=USER_ID, email=USER_EMAIL, expires_in=timedelta(hours=1), key=PRIVATE_KEY_PEM):
    """sign a session token the way the identity provider would"""
    claims = {"sub": sub, "exp": datetime.now(timezone.utc) + expires_in}
    if email:
        claims["email"] = email
    return jwt.encode(claims, key, algorithm="RS256")


# sample workflow payloads

SAMPLE_DASHBOARD = {
    "practiceName": "Cheyne Eye Center",
    "dateRange": "3/24/25 - 3/29/25",
    "prescriberData": [
        {"name": "Manuel Debesa", "shortName": "M. Debesa", "measurements": 27, "portalViews": 27, "highSx": 13, "orders": 0},
        {"name": "Chris Cheyne", "shortName": "C. Cheyne", "measurements": 18, "portalViews": 18, "highSx": 10, "orders": 1},
        {"name": "Nicole Stout", "shortName": "N. Stout", "measurements": 18, "portalViews": 16, "highSx": 9, "orders": 0},
        {"name": "Courtney Cobbs", "shortName": "C. Cobbs", "measurements": 21, "portalViews": 19, "highSx": 8, "orders": 1},
        {"name": "Robert Yeaman", "shortName": "R. Yeaman", "measurements": 16, "portalViews": 16, "highSx": 5, "orders": 0},
    ],
    "dailyData": [
        {"name": "Mon 03/24", "measurements": 34, "portalViews": 27, "highSx": 14, "orders": 0},
        {"name": "Tue 03/25", "measurements": 28, "portalViews": 21, "highSx": 7, "orders": 0},
        {"name": "Wed 03/26", "measurements": 32, "portalViews": 23, "highSx": 9, "orders": 3},
        {"name": "Thu 03/27", "measurements": 32, "portalViews": 25, "highSx": 15, "orders": 1},
        {"name": "Fri 03/28", "measurements": 0, "portalViews": 0, "highSx": 0, "orders": 0},
        {"name": "Sat 03/29", "measurements": 0, "portalViews": 0, "highSx": 0, "orders": 0},
    ],
    "patientsHelped": 4,
}

SAMPLE_CUSTOMERS = {
    "value": [
        {"id": "practice-001", "name": "Cheyne Eye Center", "tam": "Dana Price",
         "tamPhone": "+15555550101", "tamEmail": "dana@neurolens.test", "isFocusAccount": "Yes"},
        {"id": "practice-002", "name": "Bayview Optometry", "tam": "Sam Ortiz",
         "tamPhone": "", "tamEmail": "sam@neurolens.test", "isFocusAccount": "No"},
        {"id": "practice-003", "name": "Alder Vision", "tam": "Dana Price",
         "tamPhone": "+15555550103", "tamEmail": None, "isFocusAccount": "yes"},
    ]
}


# workflow stub

class WorkflowStub:
    """httpx mock transport that records requests and answers per url"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, object] = {}

    def reply(self, url, body=None, status_code=200, text=None, content=None):
        """register a canned response for a url"""
        self.routes[url] = (status_code, body, text, content)

    def fail(self, url, exc):
        """make every request to url raise a transport error"""
        self.routes[url] = exc

    def calls(self, url):
        return [r for r in self.requests if str(r.url) == url]

    def bodies(self, url):
        return [json.loads(r.content) for r in self.calls(url)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, json={"error": "no route"})
        if isinstance(route, Exception):
            raise route
        status_code, body, text, content = route
        if content is not None:
            return httpx.Response(status_code, content=content)
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def workflow():
    """stubbed workflow endpoints with the sample payloads wired in"""
    stub = WorkflowStub()
    stub.reply(DASHBOARD_URL, copy.deepcopy(SAMPLE_DASHBOARD))
    stub.reply(CUSTOMERS_URL, copy.deepcopy(SAMPLE_CUSTOMERS))
    stub.reply(TRACKING_URL, {"ok": True})
    stub.reply(SMS_URL, {"success": True})
    return stub


@pytest_asyncio.fixture
async def gateway(workflow):
    client = GatewayClient(transport=workflow.transport)
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def sms_dispatcher(workflow):
    return SmsDispatcher(transport=workflow.transport)


@pytest.fixture
def tracking_dispatcher(workflow):
    return TrackingDispatcher(transport=workflow.transport)


@pytest.fixture
def session_token():
    return make_token()


def _install_overrides(gateway, sms_dispatcher, tracking_dispatcher):
    async def override_get_gateway():
        return gateway

    async def override_get_sms_dispatcher():
        return sms_dispatcher

    async def override_get_tracking_dispatcher():
        return tracking_dispatcher

    app.dependency_overrides[get_gateway] = override_get_gateway
    app.dependency_overrides[get_sms_dispatcher] = override_get_sms_dispatcher
    app.dependency_overrides[get_tracking_dispatcher] = override_get_tracking_dispatcher


@pytest_asyncio.fixture
async def client(gateway, sms_dispatcher, tracking_dispatcher):
    """httpx async test client without a session"""
    _install_overrides(gateway, sms_dispatcher, tracking_dispatcher)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def signed_in_client(gateway, sms_dispatcher, tracking_dispatcher, session_token):
    """client carrying a valid identity provider session token"""
    _install_overrides(gateway, sms_dispatcher, tracking_dispatcher)

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {session_token}", "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

# workflow gateway client: fetch and normalise dashboard and customer data
# one shared httpx client, one request per call, no retries and no caching

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from practice_dashboard.config import settings
from practice_dashboard.models.customer import Customer
from practice_dashboard.models.dashboard import DashboardPayload

logger = logging.getLogger(__name__)

FOCUS_ACCOUNT_SENTINEL = "Yes"
UNEXPECTED_FORMAT_MESSAGE = "Received unexpected data format from the server."
UNREACHABLE_MESSAGE = "Could not reach the server."


class GatewayError(Exception):
    """base class for anything that stops a page from loading its data"""

    status_code = 502

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingParameterError(GatewayError):
    """a required navigation parameter is absent; raised before any request"""

    status_code = 400


class GatewayUnreachableError(GatewayError):
    pass


class GatewayStatusError(GatewayError):
    def __init__(self, message: str, http_status: int):
        super().__init__(message)
        self.http_status = http_status


class GatewayDecodeError(GatewayError):
    pass


class MalformedResponseError(GatewayError):
    pass


def normalize_customer(raw: dict) -> Customer:
    """map one raw customer record into the internal shape.
    isFocusAccount must be exactly "Yes" to count as a focus account."""
    return Customer(
        id=str(raw.get("id", "")),
        name=raw.get("name"),
        tam=raw.get("tam"),
        tamPhone=raw.get("tamPhone") or None,
        tamEmail=raw.get("tamEmail") or None,
        isTop12Focus=raw.get("isFocusAccount") == FOCUS_ACCOUNT_SENTINEL,
    )


def parse_customer_list(data: Any) -> list[Customer]:
    """validate the customer-list body ({"value": [...]}) and normalise each record"""
    if not isinstance(data, dict) or not isinstance(data.get("value"), list):
        logger.error(f"Customer list response has unexpected format (expected value array): {data!r}")
        raise MalformedResponseError(UNEXPECTED_FORMAT_MESSAGE)

    customers = []
    for raw in data["value"]:
        if not isinstance(raw, dict):
            logger.error(f"Customer record is not an object: {raw!r}")
            raise MalformedResponseError(UNEXPECTED_FORMAT_MESSAGE)
        try:
            customers.append(normalize_customer(raw))
        except ValidationError as e:
            logger.error(f"Customer record failed validation: {raw!r} ({e})")
            raise MalformedResponseError(UNEXPECTED_FORMAT_MESSAGE) from e
    return customers


def parse_dashboard(data: Any) -> DashboardPayload:
    """validate the per-practice dashboard body"""
    if (
        not isinstance(data, dict)
        or not isinstance(data.get("prescriberData"), list)
        or not isinstance(data.get("dailyData"), list)
    ):
        logger.error(f"Dashboard response has unexpected format: {data!r}")
        raise MalformedResponseError(UNEXPECTED_FORMAT_MESSAGE)

    try:
        return DashboardPayload.model_validate(data)
    except ValidationError as e:
        logger.error(f"Dashboard response failed validation: {data!r} ({e})")
        raise MalformedResponseError(UNEXPECTED_FORMAT_MESSAGE) from e


class GatewayClient:
    """async http connection manager for the workflow endpoints"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def connect(self):
        """open the shared http client"""
        if self.client is not None:
            return
        self.client = httpx.AsyncClient(
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            transport=self._transport,
        )
        logger.info("Gateway http client opened")

    async def close(self):
        """close the shared http client"""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("Gateway http client closed")

    async def _post_json(self, url: str, body: dict, what: str) -> Any:
        """post a json body and return the decoded response, mapping every failure to a GatewayError"""
        if self.client is None:
            await self.connect()

        try:
            response = await self.client.post(url, json=body)
        except httpx.TransportError as e:
            logger.error(f"Could not reach {what} endpoint: {e}")
            raise GatewayUnreachableError(UNREACHABLE_MESSAGE) from e

        if not response.is_success:
            message = f"Failed to fetch {what}: {response.status_code} {response.reason_phrase}"
            logger.error(message)
            raise GatewayStatusError(message, response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Invalid json from {what} endpoint: {e}")
            raise GatewayDecodeError(str(e)) from e

    async def fetch_dashboard(self, practice_id: Optional[str]) -> DashboardPayload:
        """fetch the pre-aggregated dashboard for one practice"""
        practice_id = (practice_id or "").strip()
        if not practice_id:
            raise MissingParameterError("Practice ID is missing from the URL.")

        data = await self._post_json(
            settings.DASHBOARD_API_URL, {"practiceId": practice_id}, "dashboard data",
        )
        payload = parse_dashboard(data)
        logger.info(
            f"Dashboard loaded for practice {practice_id}: "
            f"{len(payload.prescriber_data)} prescribers, {len(payload.daily_data)} days"
        )
        return payload

    async def fetch_customers(self) -> list[Customer]:
        """fetch the full customer list"""
        data = await self._post_json(settings.CUSTOMERS_API_URL, {}, "customer data")
        customers = parse_customer_list(data)
        logger.info(f"Customer list loaded: {len(customers)} customers")
        return customers


# singleton instance
gateway = GatewayClient()


async def get_gateway() -> GatewayClient:
    """dependency injection for gateway access"""
    return gateway

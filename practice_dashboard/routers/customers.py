# customers router: the account managers' practice list and sms report dispatch
# list is fetched once per request, then filtered and sorted locally

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from practice_dashboard.dependencies import require_session
from practice_dashboard.models.customer import Customer, CustomerListView
from practice_dashboard.models.dashboard import SortState
from practice_dashboard.models.dispatch import SmsResult
from practice_dashboard.models.session import SessionContext
from practice_dashboard.services.derivation import build_customer_view
from practice_dashboard.services.dispatch import (
    SMS_BUSY_MESSAGE,
    SmsDispatcher,
    TrackingDispatcher,
    build_tracking_event,
    get_sms_dispatcher,
    get_tracking_dispatcher,
    report_link,
)
from practice_dashboard.services.gateway import GatewayClient, GatewayError, get_gateway
from practice_dashboard.services.loader import PageLoader
from practice_dashboard.services.presentation import (
    CUSTOMER_TABLE,
    RETRY_SUGGESTION,
    header_links,
    parse_sort,
    templates,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["customers"])


class SmsSendBody(BaseModel):
    recipient_phone_number: str = Field(..., min_length=1, alias="recipientPhoneNumber")

    model_config = {"populate_by_name": True}


def _sort_or_400(key: Optional[str], direction: Optional[str]) -> SortState:
    try:
        return parse_sort(CUSTOMER_TABLE, key, direction)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/customers", include_in_schema=False)
async def customers_page(
    request: Request,
    background_tasks: BackgroundTasks,
    q: str = Query("", description="search customers or tams"),
    sort: Optional[str] = Query(None),
    direction: Optional[str] = Query(None, alias="dir"),
    session: SessionContext = Depends(require_session),
    gateway: GatewayClient = Depends(get_gateway),
    tracker: TrackingDispatcher = Depends(get_tracking_dispatcher),
):
    """customer list page"""
    sort_state = _sort_or_400(sort, direction)

    background_tasks.add_task(
        tracker.track, build_tracking_event("page_view", session, request.headers.get("user-agent")),
    )

    loader: PageLoader[list[Customer]] = PageLoader()
    await loader.load("customers", gateway.fetch_customers)

    if loader.failed:
        return templates.TemplateResponse(
            request,
            "error.html",
            {
                "title": "Error Loading Customers",
                "message": loader.error.message,
                "suggestion": RETRY_SUGGESTION,
                "session": session,
                "public": False,
            },
            status_code=loader.error.status_code,
        )

    view = build_customer_view(loader.data, q, sort_state)
    extra = {"q": q} if q else {}
    return templates.TemplateResponse(
        request,
        "customers.html",
        {
            "view": view,
            "session": session,
            "table": CUSTOMER_TABLE,
            "headers": header_links(CUSTOMER_TABLE, sort_state, extra),
        },
    )


@router.get("/api/customers", response_model=CustomerListView)
async def list_customers(
    q: str = Query("", description="search customers or tams"),
    sort: Optional[str] = Query(None),
    direction: Optional[str] = Query(None, alias="dir"),
    session: SessionContext = Depends(require_session),
    gateway: GatewayClient = Depends(get_gateway),
):
    """filtered and sorted customer list"""
    sort_state = _sort_or_400(sort, direction)
    try:
        customers = await gateway.fetch_customers()
    except GatewayError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return build_customer_view(customers, q, sort_state)


@router.post("/customers/{practice_id}/sms", response_model=SmsResult)
async def send_report_sms(
    practice_id: str,
    body: SmsSendBody,
    session: SessionContext = Depends(require_session),
    sms: SmsDispatcher = Depends(get_sms_dispatcher),
):
    """text the practice's public report link to its tam"""
    if sms.busy:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=SmsResult(success=False, error=SMS_BUSY_MESSAGE).model_dump(),
        )

    logger.info(f"User {session.user_id} sending report sms for practice {practice_id}")
    result = await sms.send(body.recipient_phone_number, report_link(practice_id))
    if not result.success and result.error == SMS_BUSY_MESSAGE:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=result.model_dump())
    return result

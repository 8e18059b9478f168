# dashboard router: per-practice prescriber summary, signed-in and public variants
# html pages render through the page loader, /api twins return the derived view as json

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status

from practice_dashboard.config import settings
from practice_dashboard.dependencies import require_session
from practice_dashboard.models.dashboard import DashboardPayload, DashboardView, SortState
from practice_dashboard.models.session import ANONYMOUS, SessionContext
from practice_dashboard.services.charts import render_chart
from practice_dashboard.services.derivation import compute_totals, summarize_prescribers
from practice_dashboard.services.dispatch import (
    TrackingDispatcher,
    build_tracking_event,
    get_tracking_dispatcher,
)
from practice_dashboard.services.gateway import GatewayClient, GatewayError, get_gateway
from practice_dashboard.services.loader import PageLoader
from practice_dashboard.services.presentation import (
    DAILY_TABLE,
    DAILY_TREND_CHART,
    HIGH_SX_CHART,
    PRESCRIBER_TABLE,
    RETRY_SUGGESTION,
    UNKNOWN_FOOTNOTE,
    header_links,
    parse_sort,
    templates,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["dashboard"])


def _sort_or_400(key: Optional[str], direction: Optional[str]) -> SortState:
    try:
        return parse_sort(PRESCRIBER_TABLE, key, direction)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def build_dashboard_view(practice_id: str, payload: DashboardPayload, sort: SortState) -> DashboardView:
    """derive everything the page shows from a loaded payload"""
    return DashboardView(
        practiceId=practice_id,
        practiceName=payload.practice_name,
        dateRange=payload.date_range,
        patientsHelped=payload.patients_helped,
        prescribers=summarize_prescribers(payload, sort, sentinel=settings.NO_PROVIDER_LABEL),
        dailyData=payload.daily_data,
        dailyTotals=compute_totals(payload.daily_data),
    )


async def _load(practice_id: Optional[str], gateway: GatewayClient) -> PageLoader[DashboardPayload]:
    loader: PageLoader[DashboardPayload] = PageLoader()
    return await loader.load(practice_id, lambda: gateway.fetch_dashboard(practice_id))


async def _render_page(
    request: Request,
    practice_id: Optional[str],
    sort: SortState,
    gateway: GatewayClient,
    session: SessionContext,
    public: bool,
):
    loader = await _load(practice_id, gateway)

    if loader.failed:
        return templates.TemplateResponse(
            request,
            "error.html",
            {
                "title": "Error Loading Dashboard",
                "message": loader.error.message,
                "suggestion": RETRY_SUGGESTION,
                "session": session,
                "public": public,
            },
            status_code=loader.error.status_code,
        )

    view = build_dashboard_view(practice_id, loader.data, sort)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "view": view,
            "session": session,
            "public": public,
            "prescriber_table": PRESCRIBER_TABLE,
            "prescriber_headers": header_links(PRESCRIBER_TABLE, sort),
            "daily_table": DAILY_TABLE,
            "high_sx_chart": render_chart(HIGH_SX_CHART, view.prescribers.rows),
            "high_sx_title": HIGH_SX_CHART.title,
            "daily_chart": render_chart(DAILY_TREND_CHART, view.daily_data),
            "daily_title": DAILY_TREND_CHART.title,
            "unknown_label": settings.UNKNOWN_LABEL,
            "footnote": UNKNOWN_FOOTNOTE,
        },
    )


# pages

@router.get("/dashboard/", include_in_schema=False)
async def dashboard_missing_practice(
    request: Request,
    session: SessionContext = Depends(require_session),
    gateway: GatewayClient = Depends(get_gateway),
):
    """dashboard without a practice id: local validation error, no request sent"""
    return await _render_page(request, None, PRESCRIBER_TABLE.default_sort, gateway, session, public=False)


@router.get("/dashboard/{practice_id}", include_in_schema=False)
async def dashboard_page(
    request: Request,
    practice_id: str,
    background_tasks: BackgroundTasks,
    sort: Optional[str] = Query(None),
    direction: Optional[str] = Query(None, alias="dir"),
    session: SessionContext = Depends(require_session),
    gateway: GatewayClient = Depends(get_gateway),
    tracker: TrackingDispatcher = Depends(get_tracking_dispatcher),
):
    """signed-in dashboard for one practice"""
    sort_state = _sort_or_400(sort, direction)

    event = build_tracking_event(
        "page_view", session, request.headers.get("user-agent"), practice_id=practice_id,
    )
    background_tasks.add_task(tracker.track, event)

    return await _render_page(request, practice_id, sort_state, gateway, session, public=False)


@router.get("/public/{practice_id}", include_in_schema=False)
async def public_dashboard_page(
    request: Request,
    practice_id: str,
    sort: Optional[str] = Query(None),
    direction: Optional[str] = Query(None, alias="dir"),
    gateway: GatewayClient = Depends(get_gateway),
):
    """unauthenticated dashboard, the link sent out by sms"""
    sort_state = _sort_or_400(sort, direction)
    return await _render_page(request, practice_id, sort_state, gateway, ANONYMOUS, public=True)


# json

async def _dashboard_json(practice_id: str, sort_state: SortState, gateway: GatewayClient) -> DashboardView:
    try:
        payload = await gateway.fetch_dashboard(practice_id)
    except GatewayError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return build_dashboard_view(practice_id, payload, sort_state)


@router.get("/api/dashboard/{practice_id}", response_model=DashboardView)
async def get_dashboard(
    practice_id: str,
    sort: Optional[str] = Query(None),
    direction: Optional[str] = Query(None, alias="dir"),
    session: SessionContext = Depends(require_session),
    gateway: GatewayClient = Depends(get_gateway),
):
    """derived dashboard for a practice"""
    return await _dashboard_json(practice_id, _sort_or_400(sort, direction), gateway)


@router.get("/api/public/{practice_id}", response_model=DashboardView)
async def get_public_dashboard(
    practice_id: str,
    sort: Optional[str] = Query(None),
    direction: Optional[str] = Query(None, alias="dir"),
    gateway: GatewayClient = Depends(get_gateway),
):
    """derived dashboard for a practice, no sign-in required"""
    return await _dashboard_json(practice_id, _sort_or_400(sort, direction), gateway)

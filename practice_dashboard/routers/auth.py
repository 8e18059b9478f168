# auth router: sign-in landing, sign-out, and the root redirect
# sign-in itself happens on the identity provider's hosted page

import logging
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from practice_dashboard.config import settings
from practice_dashboard.dependencies import get_session
from practice_dashboard.models.session import SessionContext
from practice_dashboard.services.presentation import templates

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])

AFTER_SIGN_IN_PATH = "/customers"


@router.get("/", include_in_schema=False)
async def root():
    return RedirectResponse("/sign-in", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/sign-in", include_in_schema=False)
async def sign_in_page(
    request: Request,
    session: SessionContext = Depends(get_session),
):
    """sign-in landing page; already signed-in users go straight to the customer list"""
    if session.signed_in:
        return RedirectResponse(AFTER_SIGN_IN_PATH, status_code=status.HTTP_303_SEE_OTHER)

    redirect_url = str(request.base_url).rstrip("/") + AFTER_SIGN_IN_PATH
    return templates.TemplateResponse(
        request,
        "sign_in.html",
        {
            "session": session,
            "sign_in_url": settings.IDENTITY_SIGN_IN_URL,
            "redirect_url": redirect_url,
        },
    )


@router.get("/sign-out", include_in_schema=False)
async def sign_out(session: SessionContext = Depends(get_session)):
    """drop the session cookie and go back to sign-in"""
    if session.signed_in:
        logger.info(f"User {session.user_id} signed out")
    response = RedirectResponse("/sign-in", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response

# fastapi dependency injection
# provides the session context and the signed-in gate

import logging
from fastapi import Depends, Request

from practice_dashboard.models.session import SessionContext
from practice_dashboard.services.session_service import resolve_session

logger = logging.getLogger(__name__)


class SignInRequired(Exception):
    """raised by the gate; the app turns it into a redirect (pages) or a 401 (api)"""

    def __init__(self, path: str):
        super().__init__(path)
        self.path = path


async def get_session(request: Request) -> SessionContext:
    """current session, anonymous when the token is missing or invalid"""
    return resolve_session(request)


async def require_session(
    request: Request,
    session: SessionContext = Depends(get_session),
) -> SessionContext:
    """only signed-in users get through"""
    if not session.signed_in:
        logger.info(f"Unauthenticated request to {request.url.path}")
        raise SignInRequired(request.url.path)
    return session

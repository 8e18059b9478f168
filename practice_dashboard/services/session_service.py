# session service: verify identity provider session tokens
# tokens are issued by the hosted identity provider; this side only checks them

import logging
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt

from practice_dashboard.config import settings
from practice_dashboard.models.session import ANONYMOUS, SessionContext

logger = logging.getLogger(__name__)


def decode_session_token(token: str) -> Optional[dict]:
    """verify a session jwt against the provider's public key, returns claims or none"""
    if not token:
        return None
    try:
        return jwt.decode(
            token,
            settings.IDENTITY_PUBLIC_KEY,
            algorithms=[settings.IDENTITY_JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError as e:
        logger.warning(f"Session token rejected: {e}")
        return None


def extract_token(request: Request) -> Optional[str]:
    """session cookie first, then an Authorization: Bearer header"""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    auth = request.headers.get("authorization", "")
    scheme, _, credentials = auth.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def session_from_claims(claims: Optional[dict]) -> SessionContext:
    if not claims or not claims.get("sub"):
        return ANONYMOUS
    return SessionContext(
        signedIn=True,
        userId=str(claims["sub"]),
        userEmail=claims.get("email"),
    )


def resolve_session(request: Request) -> SessionContext:
    """build the session context for a request; never raises"""
    return session_from_claims(decode_session_token(extract_token(request) or ""))

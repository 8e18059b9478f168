# dashboard configuration
# loads env vars for the workflow endpoints, sms backend, and identity provider

import logging
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # workflow endpoints (pre-aggregated json)
    DASHBOARD_API_URL: str = os.getenv("DASHBOARD_API_URL", "")
    CUSTOMERS_API_URL: str = os.getenv("CUSTOMERS_API_URL", "")
    TRACKING_API_URL: str = os.getenv("TRACKING_API_URL", "")
    REQUEST_TIMEOUT_SECONDS: float = 15.0

    # sms backend
    SMS_API_BASE_URL: str = os.getenv("SMS_API_BASE_URL", "http://localhost:3001")

    # public links sent out in reports
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

    # identity provider: tokens are verified here, never issued
    IDENTITY_PUBLIC_KEY: str = os.getenv("IDENTITY_PUBLIC_KEY", "")
    IDENTITY_JWT_ALGORITHM: str = os.getenv("IDENTITY_JWT_ALGORITHM", "RS256")
    IDENTITY_SIGN_IN_URL: str = os.getenv("IDENTITY_SIGN_IN_URL", "")
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "__session")

    # table labels
    NO_PROVIDER_LABEL: str = "No Provider"
    UNKNOWN_LABEL: str = "Unknown"

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()


def require_identity_key() -> None:
    """abort startup when the identity provider key is not configured"""
    if not settings.IDENTITY_PUBLIC_KEY.strip():
        logger.critical("IDENTITY_PUBLIC_KEY is not set, refusing to start")
        raise RuntimeError("Missing identity provider public key (IDENTITY_PUBLIC_KEY)")

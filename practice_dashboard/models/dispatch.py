# side-channel models: sms dispatch and analytics tracking payloads

from typing import Optional
from pydantic import BaseModel, Field


class SmsRequest(BaseModel):
    recipient_phone_number: str = Field(..., min_length=1, alias="recipientPhoneNumber")
    report_link: str = Field(..., min_length=1, alias="reportLink")

    model_config = {"populate_by_name": True}


class SmsResult(BaseModel):
    success: bool
    error: Optional[str] = None


class TrackingEvent(BaseModel):
    """one analytics ping, serialised with camelCase keys"""
    event_type: str = Field(..., alias="eventType")
    user_id: Optional[str] = Field(None, alias="userId")
    user_email: Optional[str] = Field(None, alias="userEmail")
    practice_id: Optional[str] = Field(None, alias="practiceId")
    device: str = "unknown"
    os: str = "unknown"
    browser: str = "unknown"
    timestamp: str

    model_config = {"populate_by_name": True}

# session model: who is looking at the page
# built from the identity provider's token and passed explicitly to whoever needs it

from typing import Optional
from pydantic import BaseModel, Field


class SessionContext(BaseModel):
    signed_in: bool = Field(False, alias="signedIn")
    user_id: Optional[str] = Field(None, alias="userId")
    user_email: Optional[str] = Field(None, alias="userEmail")

    model_config = {"populate_by_name": True, "frozen": True}


ANONYMOUS = SessionContext()

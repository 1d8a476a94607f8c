from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BrowserSession(BaseModel):
    """Server-side state bound to one browser cookie."""

    id: str
    participant_id: Optional[UUID] = None
    access_granted: bool = False
    csrf_token: Optional[str] = None
    created_at: datetime
    last_seen_at: datetime
    # False until the session first holds state worth storing
    saved: bool = False

    model_config = ConfigDict(from_attributes=True)


class EnterRequest(BaseModel):
    password: Optional[str] = ""


class CsrfResponse(BaseModel):
    csrf: str


class OkResponse(BaseModel):
    ok: bool = True

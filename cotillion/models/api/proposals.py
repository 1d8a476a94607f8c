from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MAX_MESSAGE_LENGTH = 280


class ProposalStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELED = "canceled"
    # Foreclosed because one endpoint accepted a different ask
    SUPERSEDED = "superseded"


class ProposalResponse(BaseModel):
    """Response model for ask data."""

    id: UUID
    from_id: UUID = Field(serialization_alias="fromId")
    to_id: UUID = Field(serialization_alias="toId")
    status: ProposalStatus
    message: Optional[str] = None
    created_at: datetime = Field(serialization_alias="createdAt")
    resolved_at: Optional[datetime] = Field(
        default=None, serialization_alias="resolvedAt"
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AskRequest(BaseModel):
    """Request model for asking someone out."""

    to_user_id: UUID = Field(alias="toUserId")
    message: Optional[str] = Field(default=None, description="Optional note")

    model_config = ConfigDict(populate_by_name=True)


class AskEnvelope(BaseModel):
    ok: bool = True
    ask: ProposalResponse


class AskSummary(ProposalResponse):
    """An ask as seen by one of its endpoints."""

    counterpart_id: UUID = Field(serialization_alias="counterpartId")
    counterpart_name: str = Field(serialization_alias="counterpartName")


class AsksResponse(BaseModel):
    incoming: List[AskSummary]
    outgoing: List[AskSummary]

# API models for request/response contracts
from .participants import (
    Category,
    MembersResponse,
    MeResponse,
    ParticipantCredentials,
    ParticipantResponse,
    SignInRequest,
    SignUpRequest,
    UserEnvelope,
)
from .proposals import (
    AskEnvelope,
    AskRequest,
    AsksResponse,
    AskSummary,
    ProposalResponse,
    ProposalStatus,
)
from .sessions import BrowserSession, CsrfResponse, EnterRequest, OkResponse

__all__ = [
    "Category",
    "ParticipantResponse",
    "ParticipantCredentials",
    "SignUpRequest",
    "SignInRequest",
    "UserEnvelope",
    "MeResponse",
    "MembersResponse",
    "ProposalStatus",
    "ProposalResponse",
    "AskRequest",
    "AskEnvelope",
    "AskSummary",
    "AsksResponse",
    "BrowserSession",
    "EnterRequest",
    "CsrfResponse",
    "OkResponse",
]

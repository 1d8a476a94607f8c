# Export all models
from .api import (
    AskRequest,
    BrowserSession,
    Category,
    ParticipantResponse,
    ProposalResponse,
    ProposalStatus,
)
from .db import (
    PairingModel,
    ParticipantModel,
    ProposalModel,
    SessionModel,
)

__all__ = [
    # API models
    "AskRequest",
    "BrowserSession",
    "Category",
    "ParticipantResponse",
    "ProposalResponse",
    "ProposalStatus",
    # DB models
    "PairingModel",
    "ParticipantModel",
    "ProposalModel",
    "SessionModel",
]

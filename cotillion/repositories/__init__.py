# Repository classes for database operations
from .base_repository import BaseRepository
from .pairing_repository import PairingRepository
from .participant_repository import ParticipantRepository
from .proposal_repository import ProposalRepository
from .session_repository import SessionRepository

__all__ = [
    "BaseRepository",
    "PairingRepository",
    "ParticipantRepository",
    "ProposalRepository",
    "SessionRepository",
]

# SQLAlchemy database models
from .pairing_model import PairingModel
from .participant_model import ParticipantModel
from .proposal_model import ProposalModel
from .session_model import SessionModel

__all__ = ["PairingModel", "ParticipantModel", "ProposalModel", "SessionModel"]

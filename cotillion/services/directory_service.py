from typing import Any, List

from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.errors import ParticipantNotFound
from cotillion.models.api.participants import ParticipantResponse
from cotillion.repositories.participant_repository import ParticipantRepository


class DirectoryService:
    """Read-only member listing with derived pairing status."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.participant_repo = ParticipantRepository(db)

    async def list_participants(self) -> List[ParticipantResponse]:
        """Every participant with partner id and name, queried fresh each call."""
        return await self.participant_repo.list_with_partners()

    async def get_participant(self, participant_id: Any) -> ParticipantResponse:
        participant = await self.participant_repo.get_by_id(participant_id)
        if not participant:
            raise ParticipantNotFound()
        return participant

import uuid
from typing import Sequence
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from cotillion.models.db.pairing_model import PairingModel


class PairingRepository:
    """Repository for the pairing relation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def any_paired(self, participant_ids: Sequence[UUID]) -> bool:
        """True if any of the given participants already has a partner."""
        ids = list(participant_ids)
        query = (
            select(PairingModel.id)
            .where(or_(PairingModel.girl_id.in_(ids), PairingModel.guy_id.in_(ids)))
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none() is not None

    async def add_pairing(
        self, girl_id: UUID, guy_id: UUID, proposal_id: UUID
    ) -> PairingModel:
        """Insert a pairing; a second partner for anyone raises IntegrityError."""
        pairing = PairingModel(
            id=uuid.uuid4(), girl_id=girl_id, guy_id=guy_id, proposal_id=proposal_id
        )
        self.db.add(pairing)
        await self.db.flush()
        return pairing

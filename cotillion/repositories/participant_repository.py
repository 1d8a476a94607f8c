import uuid
from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import case, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import aliased

from cotillion.models.api.participants import (
    Category,
    ParticipantCredentials,
    ParticipantResponse,
)
from cotillion.models.db.pairing_model import PairingModel
from cotillion.models.db.participant_model import ParticipantModel
from cotillion.repositories.base_repository import BaseRepository, as_uuid


class ParticipantRepository(BaseRepository[ParticipantModel, ParticipantResponse]):
    """Repository for participant operations.

    Partner fields are never stored on the participant row; every read joins
    against the pairings table so the result reflects committed pairings.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, ParticipantModel)

    def _with_partner_query(self) -> Any:
        partner = aliased(ParticipantModel)
        partner_id = case(
            (PairingModel.girl_id == ParticipantModel.id, PairingModel.guy_id),
            else_=PairingModel.girl_id,
        )
        return (
            select(ParticipantModel, partner.id, partner.name)
            .outerjoin(
                PairingModel,
                or_(
                    PairingModel.girl_id == ParticipantModel.id,
                    PairingModel.guy_id == ParticipantModel.id,
                ),
            )
            .outerjoin(partner, partner.id == partner_id)
            .execution_options(populate_existing=True)
        )

    async def list_with_partners(self) -> List[ParticipantResponse]:
        """Get every participant with current partner id and name."""
        query = self._with_partner_query().order_by(
            ParticipantModel.created_at, ParticipantModel.name
        )
        result = await self.db.execute(query)
        return [
            self._to_pydantic(db_model, partner_id, partner_name)
            for db_model, partner_id, partner_name in result.all()
        ]

    async def get_by_id(self, id: Any) -> Optional[ParticipantResponse]:
        """Get a participant by ID with partner fields resolved."""
        query = self._with_partner_query().where(ParticipantModel.id == as_uuid(id))
        result = await self.db.execute(query)
        row = result.first()
        if row is None:
            return None
        db_model, partner_id, partner_name = row
        return self._to_pydantic(db_model, partner_id, partner_name)

    async def get_credentials_by_name(
        self, name: str
    ) -> Optional[ParticipantCredentials]:
        """Get the stored code hash for a participant name."""
        query = select(self.model_class).where(self.model_class.name == name)
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        if not db_model:
            return None
        return ParticipantCredentials(
            id=db_model.id,
            name=db_model.name,
            category=db_model.category,
            code_hash=db_model.code_hash,
        )

    async def add_participant(
        self, name: str, code_hash: str, category: Category
    ) -> ParticipantResponse:
        """Insert a new participant.

        A duplicate name surfaces as IntegrityError on flush; the UNIQUE
        constraint is what decides concurrent signups.
        """
        db_model = ParticipantModel(
            id=uuid.uuid4(),
            name=name,
            code_hash=code_hash,
            category=category.value,
        )
        self.db.add(db_model)
        await self.db.flush()
        return self._to_pydantic(db_model)

    async def lock_for_update(self, ids: Sequence[UUID]) -> List[ParticipantModel]:
        """Lock participant rows in id order for the current transaction.

        SQLite ignores FOR UPDATE; it serializes writers on its own.
        """
        query = (
            select(self.model_class)
            .where(self.model_class.id.in_(list(ids)))
            .order_by(self.model_class.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    def _to_pydantic(
        self,
        db_model: Any,
        partner_id: Optional[UUID] = None,
        partner_name: Optional[str] = None,
    ) -> ParticipantResponse:
        """Convert SQLAlchemy ParticipantModel to Pydantic ParticipantResponse."""
        return ParticipantResponse(
            id=db_model.id,
            name=db_model.name,
            category=db_model.category,
            partner_id=partner_id,
            partner_name=partner_name,
        )

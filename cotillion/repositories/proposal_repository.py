import uuid
from typing import Any, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from cotillion.database import utc_now
from cotillion.models.api.proposals import (
    AskSummary,
    ProposalResponse,
    ProposalStatus,
)
from cotillion.models.db.proposal_model import ProposalModel
from cotillion.repositories.base_repository import BaseRepository, as_uuid


class ProposalRepository(BaseRepository[ProposalModel, ProposalResponse]):
    """Repository for ask operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ProposalModel)

    async def get_by_id(self, id: Any) -> Optional[ProposalResponse]:
        return await super().get_by_id(as_uuid(id))

    async def add_proposal(
        self, from_id: UUID, to_id: UUID, message: Optional[str]
    ) -> ProposalResponse:
        """Insert a pending ask."""
        new_proposal = ProposalResponse(
            id=uuid.uuid4(),
            from_id=from_id,
            to_id=to_id,
            status=ProposalStatus.PENDING,
            message=message,
            created_at=utc_now(),
        )
        return await self.create(new_proposal)

    async def transition(self, proposal_id: UUID, status: ProposalStatus) -> bool:
        """Move a pending ask to ``status``.

        The WHERE clause re-checks ``pending`` at write time, so of two
        racing transitions only one sees a row updated.
        """
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.id == proposal_id,
                self.model_class.status == ProposalStatus.PENDING.value,
            )
            .values(status=status.value, resolved_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def supersede_pending(
        self, participant_ids: Sequence[UUID], except_id: UUID
    ) -> int:
        """Foreclose every other pending ask touching the given participants."""
        ids = list(participant_ids)
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.status == ProposalStatus.PENDING.value,
                self.model_class.id != except_id,
                or_(
                    self.model_class.from_id.in_(ids),
                    self.model_class.to_id.in_(ids),
                ),
            )
            .values(status=ProposalStatus.SUPERSEDED.value, resolved_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def list_for_participant(
        self, participant_id: UUID
    ) -> Tuple[List[AskSummary], List[AskSummary]]:
        """Get (incoming, outgoing) asks for a participant, newest first."""
        query = (
            select(self.model_class)
            .where(
                or_(
                    self.model_class.from_id == participant_id,
                    self.model_class.to_id == participant_id,
                )
            )
            .options(
                selectinload(self.model_class.sender),
                selectinload(self.model_class.recipient),
            )
            .order_by(self.model_class.created_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        incoming: List[AskSummary] = []
        outgoing: List[AskSummary] = []
        for db_model in result.scalars().all():
            if db_model.to_id == participant_id:
                incoming.append(self._to_summary(db_model, db_model.sender))
            else:
                outgoing.append(self._to_summary(db_model, db_model.recipient))
        return incoming, outgoing

    def _to_summary(self, db_model: Any, counterpart: Any) -> AskSummary:
        return AskSummary(
            **self._to_pydantic(db_model).model_dump(),
            counterpart_id=counterpart.id,
            counterpart_name=counterpart.name,
        )

    def _to_pydantic(self, db_model: Any) -> ProposalResponse:
        """Convert SQLAlchemy ProposalModel to Pydantic ProposalResponse."""
        return ProposalResponse(
            id=db_model.id,
            from_id=db_model.from_id,
            to_id=db_model.to_id,
            status=db_model.status,
            message=db_model.message,
            created_at=db_model.created_at,
            resolved_at=db_model.resolved_at,
        )

    def _from_pydantic(self, pydantic_model: ProposalResponse) -> ProposalModel:
        """Convert Pydantic ProposalResponse to SQLAlchemy ProposalModel."""
        return ProposalModel(
            id=pydantic_model.id,
            from_id=pydantic_model.from_id,
            to_id=pydantic_model.to_id,
            status=pydantic_model.status.value,
            message=pydantic_model.message,
            created_at=pydantic_model.created_at,
            resolved_at=pydantic_model.resolved_at,
        )

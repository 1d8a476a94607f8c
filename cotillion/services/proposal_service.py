import asyncio
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.config import ACCEPT_MAX_RETRIES, ACCEPT_RETRY_DELAY_SECONDS
from cotillion.errors import (
    AlreadyPaired,
    Forbidden,
    NotPending,
    NotSignedIn,
    ParticipantNotFound,
    ProposalNotFound,
    ServerError,
    WrongDirection,
)
from cotillion.models.api.participants import Category
from cotillion.models.api.proposals import (
    MAX_MESSAGE_LENGTH,
    AsksResponse,
    ProposalResponse,
    ProposalStatus,
)
from cotillion.repositories.pairing_repository import PairingRepository
from cotillion.repositories.participant_repository import ParticipantRepository
from cotillion.repositories.proposal_repository import ProposalRepository

logger = logging.getLogger(__name__)


def clip_message(message: Optional[str]) -> Optional[str]:
    """Silently truncate an ask's note; empty notes are stored as None."""
    return (message or "")[:MAX_MESSAGE_LENGTH] or None


class ProposalService:
    """Creates asks and drives them through pending -> resolved.

    Invariant: nobody holds more than one partner. The pairings table's
    UNIQUE columns and the conditional status updates enforce it in the
    database; the checks here only produce the friendlier error first.
    """

    def __init__(
        self,
        db: AsyncSession,
        max_retries: int = ACCEPT_MAX_RETRIES,
        retry_delay: float = ACCEPT_RETRY_DELAY_SECONDS,
    ):
        self.db = db
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.participant_repo = ParticipantRepository(db)
        self.pairing_repo = PairingRepository(db)
        self.proposal_repo = ProposalRepository(db)

    async def create(
        self, sender_id: Optional[UUID], to_id: UUID, message: Optional[str]
    ) -> ProposalResponse:
        """
        Ask someone out:

        1. Lock both participants
        2. Only girls may ask guys
        3. Neither side may already be paired
        4. Insert a pending ask with the clipped note
        5. Re-check pairings under the write lock before committing
        """
        if sender_id is None:
            raise NotSignedIn()

        try:
            locked = await self.participant_repo.lock_for_update([sender_id, to_id])
            by_id = {p.id: p for p in locked}
            sender, recipient = by_id.get(sender_id), by_id.get(to_id)
            if sender is None:
                raise NotSignedIn()
            if recipient is None:
                raise ParticipantNotFound()

            if not (
                sender.category == Category.GIRL.value
                and recipient.category == Category.GUY.value
            ):
                raise WrongDirection()

            if await self.pairing_repo.any_paired([sender_id, to_id]):
                raise AlreadyPaired()

            proposal = await self.proposal_repo.add_proposal(
                sender_id, to_id, clip_message(message)
            )
            # SQLite ignores FOR UPDATE and reads above take no lock; after the
            # insert this transaction holds the write lock, so check again
            if await self.pairing_repo.any_paired([sender_id, to_id]):
                raise AlreadyPaired()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Ask created",
            extra={"ask_id": proposal.id, "participant_id": sender_id},
        )
        return proposal

    async def accept(self, proposal_id: UUID, actor_id: Optional[UUID]) -> ProposalResponse:
        """Accept an ask, retrying the transaction on lock contention."""
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._accept_once(proposal_id, actor_id)
            except OperationalError:
                await self.db.rollback()
                logger.warning(
                    "Contention while accepting ask",
                    extra={"ask_id": proposal_id, "attempt": attempt},
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * attempt)

        logger.error("Giving up on accepting ask", extra={"ask_id": proposal_id})
        raise ServerError()

    async def _accept_once(
        self, proposal_id: UUID, actor_id: Optional[UUID]
    ) -> ProposalResponse:
        try:
            proposal = await self._load_for_actor(proposal_id, actor_id, recipient=True)
            endpoints = [proposal.from_id, proposal.to_id]

            await self.participant_repo.lock_for_update(endpoints)
            if await self.pairing_repo.any_paired(endpoints):
                raise AlreadyPaired()

            if not await self.proposal_repo.transition(
                proposal.id, ProposalStatus.ACCEPTED
            ):
                raise NotPending()

            await self.pairing_repo.add_pairing(
                girl_id=proposal.from_id, guy_id=proposal.to_id, proposal_id=proposal.id
            )
            superseded = await self.proposal_repo.supersede_pending(
                endpoints, except_id=proposal.id
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyPaired()
        except OperationalError:
            raise
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Ask accepted, %d other pending ask(s) superseded",
            superseded,
            extra={"ask_id": proposal.id, "participant_id": actor_id},
        )
        return await self.proposal_repo.get_by_id(proposal.id)

    async def decline(self, proposal_id: UUID, actor_id: Optional[UUID]) -> ProposalResponse:
        """The person asked turns the ask down."""
        return await self._resolve(
            proposal_id, actor_id, ProposalStatus.DECLINED, recipient=True
        )

    async def cancel(self, proposal_id: UUID, actor_id: Optional[UUID]) -> ProposalResponse:
        """The sender withdraws the ask."""
        return await self._resolve(
            proposal_id, actor_id, ProposalStatus.CANCELED, recipient=False
        )

    async def _resolve(
        self,
        proposal_id: UUID,
        actor_id: Optional[UUID],
        status: ProposalStatus,
        recipient: bool,
    ) -> ProposalResponse:
        try:
            proposal = await self._load_for_actor(proposal_id, actor_id, recipient)
            if not await self.proposal_repo.transition(proposal.id, status):
                raise NotPending()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Ask %s",
            status.value,
            extra={"ask_id": proposal.id, "participant_id": actor_id},
        )
        return await self.proposal_repo.get_by_id(proposal.id)

    async def _load_for_actor(
        self, proposal_id: UUID, actor_id: Optional[UUID], recipient: bool
    ) -> ProposalResponse:
        """Fetch a pending ask that ``actor_id`` is allowed to act on."""
        if actor_id is None:
            raise NotSignedIn()

        proposal = await self.proposal_repo.get_by_id(proposal_id)
        if proposal is None:
            raise ProposalNotFound()

        if recipient and actor_id != proposal.to_id:
            raise Forbidden("Only the person asked can respond")
        if not recipient and actor_id != proposal.from_id:
            raise Forbidden("Only the sender can cancel an ask")

        if proposal.status != ProposalStatus.PENDING:
            raise NotPending()
        return proposal

    async def list_for(self, participant_id: Optional[UUID]) -> AsksResponse:
        """Incoming and outgoing asks for the signed-in participant."""
        if participant_id is None:
            raise NotSignedIn()
        incoming, outgoing = await self.proposal_repo.list_for_participant(
            participant_id
        )
        return AsksResponse(incoming=incoming, outgoing=outgoing)

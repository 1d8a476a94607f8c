import asyncio
from typing import Any, Awaitable, Callable
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.database import AsyncSessionLocal
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
from cotillion.models.api.proposals import ProposalStatus
from cotillion.repositories.pairing_repository import PairingRepository
from cotillion.repositories.participant_repository import ParticipantRepository
from cotillion.repositories.proposal_repository import ProposalRepository
from cotillion.services.directory_service import DirectoryService
from cotillion.services.proposal_service import ProposalService, clip_message

MakeParticipant = Callable[..., Awaitable[Any]]


class TestClipMessage:
    def test_short_message_kept(self) -> None:
        assert clip_message("Hi") == "Hi"

    def test_long_message_truncated(self) -> None:
        assert clip_message("x" * 300) == "x" * 280

    def test_empty_message_is_none(self) -> None:
        assert clip_message("") is None
        assert clip_message(None) is None


class TestProposalServiceUnit:
    """Unit tests for ProposalService with a mocked database."""

    def test_service_initialization(self, mock_db: AsyncMock) -> None:
        service = ProposalService(mock_db)
        assert service.db == mock_db
        assert isinstance(service.participant_repo, ParticipantRepository)
        assert isinstance(service.pairing_repo, PairingRepository)
        assert isinstance(service.proposal_repo, ProposalRepository)

    @pytest.mark.asyncio
    async def test_create_requires_sign_in(self, mock_db: AsyncMock) -> None:
        with pytest.raises(NotSignedIn):
            await ProposalService(mock_db).create(None, uuid4(), "Hi")

    @pytest.mark.asyncio
    async def test_resolution_requires_sign_in(self, mock_db: AsyncMock) -> None:
        service = ProposalService(mock_db)
        for operation in (service.accept, service.decline, service.cancel):
            with pytest.raises(NotSignedIn):
                await operation(uuid4(), None)

    @pytest.mark.asyncio
    async def test_accept_retries_on_contention(self, mock_db: AsyncMock) -> None:
        """Lock contention is retried, then surfaces as a server error."""
        service = ProposalService(mock_db, max_retries=3, retry_delay=0)
        contention = OperationalError("UPDATE asks", {}, Exception("database is locked"))

        with patch.object(
            service, "_accept_once", new_callable=AsyncMock, side_effect=contention
        ) as mock_accept:
            with pytest.raises(ServerError):
                await service.accept(uuid4(), uuid4())

        assert mock_accept.await_count == 3
        assert mock_db.rollback.await_count == 3

    @pytest.mark.asyncio
    async def test_accept_succeeds_after_transient_failure(
        self, mock_db: AsyncMock
    ) -> None:
        service = ProposalService(mock_db, max_retries=3, retry_delay=0)
        contention = OperationalError("UPDATE asks", {}, Exception("deadlock"))
        accepted = object()

        with patch.object(
            service,
            "_accept_once",
            new_callable=AsyncMock,
            side_effect=[contention, accepted],
        ):
            assert await service.accept(uuid4(), uuid4()) is accepted


class TestCreate:
    """Integration tests for asking someone out."""

    @pytest.mark.asyncio
    async def test_girl_asks_guy(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        bob = await make_participant("Bob", "guy")

        ask = await ProposalService(db).create(ann.id, bob.id, "Hi")

        assert ask.status == ProposalStatus.PENDING
        assert ask.from_id == ann.id
        assert ask.to_id == bob.id
        assert ask.message == "Hi"

    @pytest.mark.asyncio
    async def test_message_clipped(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        bob = await make_participant("Bob", "guy")

        ask = await ProposalService(db).create(ann.id, bob.id, "y" * 500)
        assert len(ask.message) == 280

    @pytest.mark.asyncio
    async def test_wrong_direction(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        cara = await make_participant("Cara", "girl")
        bob = await make_participant("Bob", "guy")
        carl = await make_participant("Carl", "guy")
        service = ProposalService(db)

        for sender, target in ((bob, ann), (ann, cara), (bob, carl), (ann, ann)):
            with pytest.raises(WrongDirection):
                await service.create(sender.id, target.id, None)

        incoming, outgoing = await ProposalRepository(db).list_for_participant(ann.id)
        assert incoming == [] and outgoing == []

    @pytest.mark.asyncio
    async def test_unknown_target(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        with pytest.raises(ParticipantNotFound):
            await ProposalService(db).create(ann.id, uuid4(), None)

    @pytest.mark.asyncio
    async def test_vanished_sender(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        bob = await make_participant("Bob", "guy")
        with pytest.raises(NotSignedIn):
            await ProposalService(db).create(uuid4(), bob.id, None)

    @pytest.mark.asyncio
    async def test_multiple_pending_asks_allowed(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        dee = await make_participant("Dee", "girl")
        bob = await make_participant("Bob", "guy")
        service = ProposalService(db)

        await service.create(ann.id, bob.id, None)
        await service.create(ann.id, bob.id, "again")
        await service.create(dee.id, bob.id, None)

        incoming, _ = await ProposalRepository(db).list_for_participant(bob.id)
        assert len(incoming) == 3


class TestResolution:
    """Integration tests for accept, decline and cancel."""

    @pytest.mark.asyncio
    async def test_accept_pairs_both_and_supersedes_siblings(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        dee = await make_participant("Dee", "girl")
        bob = await make_participant("Bob", "guy")
        carl = await make_participant("Carl", "guy")
        service = ProposalService(db)
        chosen = await service.create(ann.id, bob.id, "Hi")
        rival = await service.create(dee.id, bob.id, None)
        backup = await service.create(ann.id, carl.id, None)
        unrelated = await service.create(dee.id, carl.id, None)

        accepted = await service.accept(chosen.id, bob.id)

        assert accepted.status == ProposalStatus.ACCEPTED
        assert accepted.resolved_at is not None
        asks = ProposalRepository(db)
        assert (await asks.get_by_id(rival.id)).status == ProposalStatus.SUPERSEDED
        assert (await asks.get_by_id(backup.id)).status == ProposalStatus.SUPERSEDED
        assert (await asks.get_by_id(unrelated.id)).status == ProposalStatus.PENDING

        directory = DirectoryService(db)
        assert (await directory.get_participant(ann.id)).partner_id == bob.id
        assert (await directory.get_participant(bob.id)).partner_id == ann.id
        assert (await directory.get_participant(bob.id)).partner_name == "Ann"

    @pytest.mark.asyncio
    async def test_only_recipient_accepts(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        bob = await make_participant("Bob", "guy")
        carl = await make_participant("Carl", "guy")
        service = ProposalService(db)
        ask = await service.create(ann.id, bob.id, None)

        for actor in (ann, carl):
            with pytest.raises(Forbidden):
                await service.accept(ask.id, actor.id)
            with pytest.raises(Forbidden):
                await service.decline(ask.id, actor.id)

        assert (await ProposalRepository(db).get_by_id(ask.id)).status == (
            ProposalStatus.PENDING
        )

    @pytest.mark.asyncio
    async def test_only_sender_cancels(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        bob = await make_participant("Bob", "guy")
        service = ProposalService(db)
        ask = await service.create(ann.id, bob.id, None)

        with pytest.raises(Forbidden):
            await service.cancel(ask.id, bob.id)

        canceled = await service.cancel(ask.id, ann.id)
        assert canceled.status == ProposalStatus.CANCELED

    @pytest.mark.asyncio
    async def test_decline(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        bob = await make_participant("Bob", "guy")
        service = ProposalService(db)
        ask = await service.create(ann.id, bob.id, None)

        declined = await service.decline(ask.id, bob.id)
        assert declined.status == ProposalStatus.DECLINED
        assert (await DirectoryService(db).get_participant(bob.id)).partner_id is None

    @pytest.mark.asyncio
    async def test_terminal_states_are_final(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        bob = await make_participant("Bob", "guy")
        service = ProposalService(db)
        ask = await service.create(ann.id, bob.id, None)
        await service.decline(ask.id, bob.id)

        with pytest.raises(NotPending):
            await service.accept(ask.id, bob.id)
        with pytest.raises(NotPending):
            await service.decline(ask.id, bob.id)
        with pytest.raises(NotPending):
            await service.cancel(ask.id, ann.id)

    @pytest.mark.asyncio
    async def test_unknown_ask(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        bob = await make_participant("Bob", "guy")
        service = ProposalService(db)
        for operation in (service.accept, service.decline, service.cancel):
            with pytest.raises(ProposalNotFound):
                await operation(uuid4(), bob.id)

    @pytest.mark.asyncio
    async def test_accept_rechecks_pairing(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        """A pending ask whose endpoint got paired elsewhere cannot be accepted."""
        ann = await make_participant("Ann", "girl")
        bob = await make_participant("Bob", "guy")
        carl = await make_participant("Carl", "guy")
        service = ProposalService(db)
        first = await service.create(ann.id, bob.id, None)
        second = await service.create(ann.id, carl.id, None)

        # Pair Ann with Bob behind the engine's back, leaving `second` pending
        await PairingRepository(db).add_pairing(ann.id, bob.id, first.id)
        await db.commit()

        with pytest.raises(AlreadyPaired):
            await service.accept(second.id, carl.id)
        assert (await ProposalRepository(db).get_by_id(second.id)).status == (
            ProposalStatus.PENDING
        )

    @pytest.mark.asyncio
    async def test_list_for(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        bob = await make_participant("Bob", "guy")
        service = ProposalService(db)
        await service.create(ann.id, bob.id, "Hi")

        mine = await service.list_for(bob.id)
        assert [a.counterpart_name for a in mine.incoming] == ["Ann"]
        assert mine.outgoing == []
        with pytest.raises(NotSignedIn):
            await service.list_for(None)


class TestScenario:
    """End-to-end pairing story at the service layer."""

    @pytest.mark.asyncio
    async def test_ann_bob_cara(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl", "1234")
        bob = await make_participant("Bob", "guy", "5678")
        cara = await make_participant("Cara", "guy")
        service = ProposalService(db)
        directory = DirectoryService(db)

        ask = await service.create(ann.id, bob.id, "Hi")
        members = {m.name: m for m in await directory.list_participants()}
        assert members["Bob"].partner_id is None

        await service.accept(ask.id, bob.id)
        members = {m.name: m for m in await directory.list_participants()}
        assert members["Ann"].partner_name == "Bob"
        assert members["Bob"].partner_name == "Ann"
        assert members["Cara"].partner_id is None

        with pytest.raises(AlreadyPaired):
            await service.create(ann.id, cara.id, None)


class TestConcurrentAccept:
    """Two accepts racing on asks that share an endpoint."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("shared", ["sender", "recipient"])
    async def test_exactly_one_accept_wins(
        self, make_participant: MakeParticipant, shared: str
    ) -> None:
        ann = await make_participant("Ann", "girl")
        dee = await make_participant("Dee", "girl")
        bob = await make_participant("Bob", "guy")
        carl = await make_participant("Carl", "guy")

        async with AsyncSessionLocal() as setup_db:
            service = ProposalService(setup_db)
            if shared == "sender":
                first = await service.create(ann.id, bob.id, None)
                second = await service.create(ann.id, carl.id, None)
                actors = (bob.id, carl.id)
            else:
                first = await service.create(ann.id, bob.id, None)
                second = await service.create(dee.id, bob.id, None)
                actors = (bob.id, bob.id)

        async def accept(ask_id: Any, actor_id: Any) -> Any:
            async with AsyncSessionLocal() as session:
                return await ProposalService(session).accept(ask_id, actor_id)

        results = await asyncio.gather(
            accept(first.id, actors[0]),
            accept(second.id, actors[1]),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], (AlreadyPaired, NotPending))

        async with AsyncSessionLocal() as check_db:
            members = await DirectoryService(check_db).list_participants()
            paired = [m for m in members if m.partner_id is not None]
            assert len(paired) == 2
            asks = ProposalRepository(check_db)
            statuses = {
                (await asks.get_by_id(first.id)).status,
                (await asks.get_by_id(second.id)).status,
            }
            assert statuses == {ProposalStatus.ACCEPTED, ProposalStatus.SUPERSEDED}


class TestCreateRacingAccept:
    """An accept that commits while an ask is being created."""

    @pytest.mark.asyncio
    async def test_pairing_committed_mid_create_is_caught(
        self, db: AsyncSession, make_participant: MakeParticipant
    ) -> None:
        ann = await make_participant("Ann", "girl")
        dee = await make_participant("Dee", "girl")
        bob = await make_participant("Bob", "guy")
        rival = await ProposalService(db).create(dee.id, bob.id, None)

        real_any_paired = PairingRepository.any_paired
        interleaved: list = []

        async def check_then_let_bob_accept(repo: Any, ids: Any) -> bool:
            result = await real_any_paired(repo, ids)
            if not interleaved:
                interleaved.append(ids)
                async with AsyncSessionLocal() as other:
                    await ProposalService(other).accept(rival.id, bob.id)
            return result

        with patch.object(PairingRepository, "any_paired", check_then_let_bob_accept):
            with pytest.raises(AlreadyPaired):
                await ProposalService(db).create(ann.id, bob.id, "Hi")

        incoming, _ = await ProposalRepository(db).list_for_participant(bob.id)
        assert [(a.counterpart_name, a.status) for a in incoming] == [
            ("Dee", ProposalStatus.ACCEPTED)
        ]
        directory = DirectoryService(db)
        assert (await directory.get_participant(ann.id)).partner_id is None
        assert (await directory.get_participant(bob.id)).partner_id == dee.id

    @pytest.mark.asyncio
    async def test_recheck_after_insert_rolls_back(self, mock_db: AsyncMock) -> None:
        sender_id, to_id = uuid4(), uuid4()
        sender = MagicMock(id=sender_id, category="girl")
        recipient = MagicMock(id=to_id, category="guy")
        service = ProposalService(mock_db)

        with patch.object(
            service.participant_repo,
            "lock_for_update",
            new_callable=AsyncMock,
            return_value=[sender, recipient],
        ), patch.object(
            service.pairing_repo,
            "any_paired",
            new_callable=AsyncMock,
            side_effect=[False, True],
        ), patch.object(
            service.proposal_repo, "add_proposal", new_callable=AsyncMock
        ) as mock_add:
            with pytest.raises(AlreadyPaired):
                await service.create(sender_id, to_id, "Hi")

        mock_add.assert_awaited_once()
        mock_db.commit.assert_not_called()
        mock_db.rollback.assert_awaited_once()

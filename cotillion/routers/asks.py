from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.database import get_db
from cotillion.dependencies import get_browser_session
from cotillion.models.api.proposals import AskEnvelope, AskRequest, AsksResponse
from cotillion.models.api.sessions import BrowserSession, OkResponse
from cotillion.services.proposal_service import ProposalService

router = APIRouter()


@router.post("/ask", response_model=AskEnvelope)
async def create_ask(
    request: AskRequest,
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> AskEnvelope:
    """Ask another participant out."""
    service = ProposalService(db)
    ask = await service.create(session.participant_id, request.to_user_id, request.message)
    return AskEnvelope(ask=ask)


@router.get("/asks", response_model=AsksResponse)
async def list_asks(
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> AsksResponse:
    """Asks sent and received by the signed-in participant."""
    service = ProposalService(db)
    return await service.list_for(session.participant_id)


@router.post("/ask/{ask_id}/accept", response_model=OkResponse)
async def accept_ask(
    ask_id: UUID,
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    service = ProposalService(db)
    await service.accept(ask_id, session.participant_id)
    return OkResponse()


@router.post("/ask/{ask_id}/decline", response_model=OkResponse)
async def decline_ask(
    ask_id: UUID,
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    service = ProposalService(db)
    await service.decline(ask_id, session.participant_id)
    return OkResponse()


@router.post("/ask/{ask_id}/cancel", response_model=OkResponse)
async def cancel_ask(
    ask_id: UUID,
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    service = ProposalService(db)
    await service.cancel(ask_id, session.participant_id)
    return OkResponse()

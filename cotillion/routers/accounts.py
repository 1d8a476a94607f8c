from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.database import get_db
from cotillion.dependencies import get_browser_session
from cotillion.models.api.participants import (
    MeResponse,
    SignInRequest,
    SignUpRequest,
    UserEnvelope,
)
from cotillion.models.api.sessions import BrowserSession, CsrfResponse, OkResponse
from cotillion.services.session_service import SessionService

router = APIRouter()


@router.get("/csrf", response_model=CsrfResponse)
async def get_csrf(
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> CsrfResponse:
    """Return the session's CSRF token, creating one if needed."""
    service = SessionService(db)
    return CsrfResponse(csrf=await service.csrf_token(session))


@router.post("/signup", response_model=UserEnvelope)
async def sign_up(
    request: SignUpRequest,
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    """Register and sign in as a new participant."""
    service = SessionService(db)
    user = await service.sign_up(session, request.name, request.code, request.category)
    return UserEnvelope(user=user)


@router.post("/signin", response_model=UserEnvelope)
async def sign_in(
    request: SignInRequest,
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    """Sign in with name and secret code."""
    service = SessionService(db)
    user = await service.sign_in(session, request.name, request.code)
    return UserEnvelope(user=user)


@router.post("/signout", response_model=OkResponse)
async def sign_out(
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    service = SessionService(db)
    await service.sign_out(session)
    return OkResponse()


@router.get("/me", response_model=MeResponse)
async def get_me(
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> MeResponse:
    """The signed-in participant with current partner."""
    service = SessionService(db)
    return MeResponse(me=await service.current_user(session))

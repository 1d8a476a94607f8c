from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.database import get_db
from cotillion.dependencies import get_browser_session
from cotillion.models.api.sessions import BrowserSession, EnterRequest, OkResponse
from cotillion.services.session_service import SessionService

router = APIRouter()


@router.post("/enter", response_model=OkResponse)
async def enter(
    request: EnterRequest,
    session: BrowserSession = Depends(get_browser_session),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    """Exchange the site passcode for access to the API."""
    service = SessionService(db)
    await service.issue_access(session, request.password)
    return OkResponse()

"""FastAPI dependencies for the browser session, site gate and CSRF check."""

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.config import (
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SECURE,
    SESSION_IDLE_DAYS,
)
from cotillion.database import get_db
from cotillion.errors import AccessDenied, BadCsrf
from cotillion.models.api.sessions import BrowserSession
from cotillion.security import tokens_match
from cotillion.services.session_service import SessionService

CSRF_HEADER = "x-csrf-token"
SAFE_METHODS = ("GET", "HEAD", "OPTIONS")


async def get_browser_session(
    request: Request, response: Response, db: AsyncSession = Depends(get_db)
) -> BrowserSession:
    """Load (or start) the session named by the cookie and refresh the cookie."""
    service = SessionService(db)
    session = await service.load(request.cookies.get(SESSION_COOKIE_NAME))
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session.id,
        max_age=SESSION_IDLE_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=SESSION_COOKIE_SECURE,
    )
    return session


async def require_access(
    session: BrowserSession = Depends(get_browser_session),
) -> BrowserSession:
    """Reject sessions that never entered the site passcode."""
    if not session.access_granted:
        raise AccessDenied()
    return session


async def verify_csrf(
    request: Request, session: BrowserSession = Depends(require_access)
) -> BrowserSession:
    """Mutating requests must echo the session's CSRF token in a header."""
    if request.method in SAFE_METHODS:
        return session
    if not tokens_match(request.headers.get(CSRF_HEADER), session.csrf_token):
        raise BadCsrf()
    return session

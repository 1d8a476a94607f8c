import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.config import ACCESS_PASSWORD, SESSION_IDLE_DAYS
from cotillion.database import utc_now
from cotillion.errors import (
    AccessDenied,
    InvalidCategory,
    InvalidInput,
    NameTaken,
    NoSuchUser,
    NotSignedIn,
    WrongCode,
)
from cotillion.models.api.participants import Category, ParticipantResponse
from cotillion.models.api.sessions import BrowserSession
from cotillion.repositories.participant_repository import ParticipantRepository
from cotillion.repositories.session_repository import SessionRepository
from cotillion.security import (
    MAX_CODE_BYTES,
    hash_code,
    new_token,
    tokens_match,
    verify_code,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 40
MIN_CODE_LENGTH = 4

_WHITESPACE = re.compile(r"\s+")


def sanitize_name(value: Optional[str]) -> str:
    """Trim a display name and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", (value or "").strip())


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SessionService:
    """Site gate, CSRF tokens and sign-in state for one browser session."""

    def __init__(self, db: AsyncSession, idle_days: int = SESSION_IDLE_DAYS):
        self.db = db
        self.idle_window = timedelta(days=idle_days)
        self.session_repo = SessionRepository(db)
        self.participant_repo = ParticipantRepository(db)

    async def load(self, session_id: Optional[str]) -> BrowserSession:
        """
        Resolve the session behind a cookie value:

        1. Look up the stored session
        2. Drop it if it has been idle past the window
        3. Start a fresh, unsaved one when nothing usable is left
        4. Otherwise slide the idle window forward

        A fresh session is only written once it holds state (see ``_save``),
        so rejected anonymous requests leave no rows behind.
        """
        now = utc_now()
        session = await self.session_repo.get_by_id(session_id) if session_id else None

        if session and now - _as_aware(session.last_seen_at) > self.idle_window:
            await self.session_repo.delete(session.id)
            await self.db.commit()
            session = None

        if session is None:
            return self.session_repo.new_session()

        session = await self.session_repo.update_fields(session.id, last_seen_at=now)
        await self.db.commit()
        return session

    async def _save(self, session: BrowserSession, **fields: Any) -> BrowserSession:
        """Write ``fields`` to the session, inserting the row on first save.

        Updates ``session`` in place and flushes; the caller commits.
        """
        if session.saved:
            stored = await self.session_repo.update_fields(session.id, **fields)
        else:
            purged = await self.session_repo.delete_idle(utc_now() - self.idle_window)
            if purged:
                logger.info("Purged %d idle session(s)", purged)
            stored = await self.session_repo.create(session.model_copy(update=fields))

        for field, value in fields.items():
            setattr(session, field, value)
        session.saved = True
        return stored

    async def issue_access(self, session: BrowserSession, passcode: Optional[str]) -> BrowserSession:
        """Check the site passcode and rotate the CSRF token on success."""
        if not tokens_match(passcode, ACCESS_PASSWORD):
            logger.warning("Wrong site passcode")
            raise AccessDenied("Wrong passcode")

        updated = await self._save(session, access_granted=True, csrf_token=new_token())
        await self.db.commit()
        return updated

    async def csrf_token(self, session: BrowserSession) -> str:
        """Return the session's CSRF token, creating it on first use."""
        if session.csrf_token:
            return session.csrf_token

        token = new_token()
        await self._save(session, csrf_token=token)
        await self.db.commit()
        return token

    async def sign_up(
        self,
        session: BrowserSession,
        name: Optional[str],
        code: Optional[str],
        category: Optional[str],
    ) -> ParticipantResponse:
        """Register a participant and sign this session in as them."""
        clean_name = sanitize_name(name)
        clean_code = (code or "").strip()
        if (
            not clean_name
            or len(clean_name) > MAX_NAME_LENGTH
            or len(clean_code) < MIN_CODE_LENGTH
            or len(clean_code.encode("utf-8")) > MAX_CODE_BYTES
        ):
            raise InvalidInput()

        normalized = Category.normalize(category)
        if normalized is None:
            raise InvalidCategory()

        code_hash = await asyncio.to_thread(hash_code, clean_code)

        try:
            participant = await self.participant_repo.add_participant(
                clean_name, code_hash, normalized
            )
            await self._save(session, participant_id=participant.id)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise NameTaken()

        logger.info("Participant signed up", extra={"participant_id": participant.id})
        return participant

    async def sign_in(
        self, session: BrowserSession, name: Optional[str], code: Optional[str]
    ) -> ParticipantResponse:
        """Verify a name/code pair and bind the session to that participant."""
        credentials = await self.participant_repo.get_credentials_by_name(
            sanitize_name(name)
        )
        if credentials is None:
            raise NoSuchUser()

        ok = await asyncio.to_thread(
            verify_code, (code or "").strip(), credentials.code_hash
        )
        if not ok:
            logger.warning(
                "Wrong code on sign-in", extra={"participant_id": credentials.id}
            )
            raise WrongCode()

        await self._save(session, participant_id=credentials.id)
        await self.db.commit()
        return await self.participant_repo.get_by_id(credentials.id)

    async def sign_out(self, session: BrowserSession) -> None:
        await self._save(session, participant_id=None)
        await self.db.commit()

    async def current_user(self, session: BrowserSession) -> ParticipantResponse:
        """Get the signed-in participant or raise NotSignedIn."""
        if session.participant_id is None:
            raise NotSignedIn()

        participant = await self.participant_repo.get_by_id(session.participant_id)
        if participant is None:
            raise NotSignedIn()
        return participant

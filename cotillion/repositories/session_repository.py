from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.database import utc_now
from cotillion.models.api.sessions import BrowserSession
from cotillion.models.db.session_model import SessionModel
from cotillion.repositories.base_repository import BaseRepository
from cotillion.security import new_token


class SessionRepository(BaseRepository[SessionModel, BrowserSession]):
    """Repository for server-side browser sessions."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, SessionModel)

    def new_session(self) -> BrowserSession:
        """Start a fresh anonymous session in memory only."""
        now = utc_now()
        return BrowserSession(id=new_token(), created_at=now, last_seen_at=now)

    async def update_fields(self, session_id: str, **fields: Any) -> Optional[BrowserSession]:
        """Set columns on a session row and return the updated session."""
        db_model = await self.get_model(session_id)
        if not db_model:
            return None

        for field, value in fields.items():
            setattr(db_model, field, value)

        await self.db.flush()
        return self._to_pydantic(db_model)

    async def delete_idle(self, cutoff: datetime) -> int:
        """Remove sessions last seen before ``cutoff``."""
        result = await self.db.execute(
            delete(self.model_class)
            .where(self.model_class.last_seen_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _to_pydantic(self, db_model: Any) -> BrowserSession:
        """Convert SQLAlchemy SessionModel to Pydantic BrowserSession."""
        return BrowserSession(
            id=db_model.id,
            participant_id=db_model.participant_id,
            access_granted=bool(db_model.access_granted),
            csrf_token=db_model.csrf_token,
            created_at=db_model.created_at,
            last_seen_at=db_model.last_seen_at,
            saved=True,
        )

    def _from_pydantic(self, pydantic_model: BrowserSession) -> SessionModel:
        """Convert Pydantic BrowserSession to SQLAlchemy SessionModel."""
        return SessionModel(
            id=pydantic_model.id,
            participant_id=pydantic_model.participant_id,
            access_granted=pydantic_model.access_granted,
            csrf_token=pydantic_model.csrf_token,
            created_at=pydantic_model.created_at,
            last_seen_at=pydantic_model.last_seen_at,
        )

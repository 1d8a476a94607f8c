from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Uuid

from cotillion.database import Base, utc_now


class SessionModel(Base):
    """SQLAlchemy model for browser_sessions table."""

    __tablename__ = "browser_sessions"

    id = Column(String(64), primary_key=True)
    participant_id = Column(
        Uuid, ForeignKey("participants.id", ondelete="SET NULL"), nullable=True
    )
    access_granted = Column(Boolean, nullable=False, default=False)
    csrf_token = Column(String(64))
    created_at = Column(DateTime(timezone=True), default=utc_now)
    last_seen_at = Column(DateTime(timezone=True), default=utc_now)

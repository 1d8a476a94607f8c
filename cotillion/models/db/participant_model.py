import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, String, Uuid

from cotillion.database import Base, utc_now


class ParticipantModel(Base):
    """SQLAlchemy model for participants table."""

    __tablename__ = "participants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(40), nullable=False, unique=True)
    code_hash = Column(String(255), nullable=False)
    category = Column(String(10), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        CheckConstraint("category IN ('girl', 'guy')", name="ck_participants_category"),
    )

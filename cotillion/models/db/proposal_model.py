import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship

from cotillion.database import Base, utc_now


class ProposalModel(Base):
    """SQLAlchemy model for asks table."""

    __tablename__ = "asks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    from_id = Column(Uuid, ForeignKey("participants.id"), nullable=False)
    to_id = Column(Uuid, ForeignKey("participants.id"), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    message = Column(String(280))
    created_at = Column(DateTime(timezone=True), default=utc_now)
    resolved_at = Column(DateTime(timezone=True))

    # Relationships
    sender = relationship("ParticipantModel", foreign_keys=[from_id])
    recipient = relationship("ParticipantModel", foreign_keys=[to_id])

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'canceled', 'superseded')",
            name="ck_asks_status",
        ),
        CheckConstraint("from_id <> to_id", name="ck_asks_distinct_endpoints"),
        Index("idx_asks_from_id", "from_id"),
        Index("idx_asks_to_id", "to_id"),
    )

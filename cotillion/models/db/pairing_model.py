import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Uuid

from cotillion.database import Base, utc_now


class PairingModel(Base):
    """SQLAlchemy model for pairings table.

    One row per committed couple. Girls only ever appear in ``girl_id`` and
    guys in ``guy_id``, so the UNIQUE constraints make "at most one partner"
    a property of the schema.
    """

    __tablename__ = "pairings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    girl_id = Column(Uuid, ForeignKey("participants.id"), nullable=False, unique=True)
    guy_id = Column(Uuid, ForeignKey("participants.id"), nullable=False, unique=True)
    proposal_id = Column(Uuid, ForeignKey("asks.id"), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

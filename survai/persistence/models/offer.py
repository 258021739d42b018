"""Affiliate offer model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, JSON, String, Text
from sqlalchemy.orm import relationship

from survai.persistence.database import Base
from survai.persistence.models.survey import _uuid

OFFER_STATUS_ACTIVE = "ACTIVE"
OFFER_STATUSES = ("ACTIVE", "PAUSED", "EXPIRED", "PENDING", "ARCHIVED")


class Offer(Base):
    """Affiliate offer with destination and pixel URL templates.

    ``metrics`` is a denormalized hint refreshed after conversions;
    analytics always recompute from click_tracks instead of reading it.
    """

    __tablename__ = "offers"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, default=OFFER_STATUS_ACTIVE, index=True)
    destination_url = Column(Text, nullable=False)
    pixel_url = Column(Text, nullable=True)
    config = Column(JSON, nullable=True)
    # Example: { payout: 50.0, currency: "USD", dailyClickCap: 500 }
    metrics = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    click_tracks = relationship("ClickTrack", back_populates="offer")

    @property
    def is_active(self) -> bool:
        return self.status == OFFER_STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<Offer(id={self.id}, title={self.title}, status={self.status})>"

"""Click tracking model for offer click attribution."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, JSON, Numeric, String, Text
from sqlalchemy.orm import relationship

from survai.persistence.database import Base
from survai.persistence.models.survey import _uuid

CLICK_STATUS_VALID = "VALID"
CLICK_STATUS_INVALID = "INVALID"


class ClickTrack(Base):
    """A single tracked offer button click.

    ``click_id`` is the external correlation token used by conversion
    pixels; ``id`` is the internal key. A record converts at most once.
    """

    __tablename__ = "click_tracks"

    id = Column(String(36), primary_key=True, default=_uuid)
    click_id = Column(String(64), nullable=False, unique=True)

    # Foreign references
    session_id = Column(String(255), nullable=False, index=True)
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False)
    offer_id = Column(String(36), ForeignKey("offers.id"), nullable=False, index=True)
    button_variant_id = Column(String(255), nullable=False)

    # Request metadata, stored verbatim
    user_agent = Column(Text, nullable=True)
    ip_address = Column(Text, nullable=True)
    session_data = Column(JSON, nullable=True)
    # Example: { sessionId, clickId, ipAddress, userAgent, deviceInfo: { type, isMobile } }

    status = Column(String(20), nullable=False, default=CLICK_STATUS_VALID)

    # Conversion state
    converted = Column(Boolean, nullable=False, default=False)
    revenue = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    converted_at = Column(DateTime, nullable=True)

    # Timestamps
    timestamp = Column(DateTime, nullable=False)  # Client event time, server time on fallback
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    offer = relationship("Offer", back_populates="click_tracks")
    question = relationship("Question")

    __table_args__ = (
        Index("ix_click_tracks_offer_converted", "offer_id", "converted"),
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "clickId": self.click_id,
            "sessionId": self.session_id,
            "questionId": self.question_id,
            "offerId": self.offer_id,
            "buttonVariantId": self.button_variant_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "userAgent": self.user_agent,
            "ipAddress": self.ip_address,
            "session": self.session_data,
            "status": self.status,
            "converted": bool(self.converted),
            "revenue": self.revenue,
            "convertedAt": self.converted_at.isoformat() if self.converted_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<ClickTrack(id={self.id}, click_id={self.click_id}, "
            f"offer_id={self.offer_id}, converted={self.converted})>"
        )

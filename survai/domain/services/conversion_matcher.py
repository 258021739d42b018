"""Conversion matcher: attributes conversion signals to recorded clicks."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survai.core.coercion import coerce_revenue
from survai.core.errors import NotFoundError, StoreError, ValidationError
from survai.persistence.models.click_track import ClickTrack
from survai.persistence.repositories.click_track_repository import ClickTrackRepository

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Outcome of a conversion delivery.

    ``converted`` is always True on success. ``newly_converted`` is
    False for re-deliveries of an already converted click.
    """

    record: ClickTrack
    click_id: str
    offer_id: str
    converted: bool
    newly_converted: bool


class ConversionMatcher:
    """Marks click records converted, at most once per click.

    Re-deliveries succeed without touching the stored revenue or
    conversion time (first write wins).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.click_repo = ClickTrackRepository(session)

    async def record_conversion(self, click_id: Any, revenue: Any = None) -> ConversionResult:
        """Match a conversion signal to its click.

        Args:
            click_id: External click ID from the pixel or postback
            revenue: Optional revenue; malformed values are ignored

        Raises:
            ValidationError: If click_id is absent or empty
            NotFoundError: If no click has this ID
            StoreError: If the store fails
        """
        if not isinstance(click_id, str) or not click_id.strip():
            raise ValidationError("Click ID is required")
        click_id = click_id.strip()

        amount = coerce_revenue(revenue)

        try:
            transitioned = await self.click_repo.mark_converted(
                click_id, converted_at=datetime.utcnow(), revenue=amount
            )
            record = await self.click_repo.get_by_click_id(click_id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError("Failed to record conversion") from e

        if record is None:
            raise NotFoundError(f"Click ID {click_id} not found")

        if transitioned:
            logger.info(
                "Conversion recorded",
                extra={"click_id": click_id, "offer_id": record.offer_id, "revenue": amount},
            )
        else:
            logger.info(
                "Duplicate conversion ignored",
                extra={"click_id": click_id, "offer_id": record.offer_id},
            )

        return ConversionResult(
            record=record,
            click_id=record.click_id,
            offer_id=record.offer_id,
            converted=True,
            newly_converted=transitioned,
        )

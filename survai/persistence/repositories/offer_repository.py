"""Offer repository."""

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from survai.persistence.models.offer import OFFER_STATUS_ACTIVE, Offer
from survai.persistence.repositories.base import BaseRepository


class OfferRepository(BaseRepository[Offer]):
    """Repository for Offer entities (read-mostly from the tracking side)."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Offer, session)

    async def list_active(self) -> list[Offer]:
        stmt = select(Offer).where(Offer.status == OFFER_STATUS_ACTIVE).order_by(Offer.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_metrics(self, offer_id: str, metrics: dict[str, Any]) -> bool:
        """Overwrite the offer's metrics hint.

        Returns:
            True if the offer exists and was updated
        """
        stmt = update(Offer).where(Offer.id == offer_id).values(metrics=metrics)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

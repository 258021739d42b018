"""Analytics aggregation over click records.

Rollups are recomputed from click_tracks on every query; the
Offer.metrics hint is never read here.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survai.core.errors import StoreError
from survai.persistence.repositories.click_track_repository import ClickAggregate, ClickTrackRepository
from survai.persistence.repositories.offer_repository import OfferRepository
from survai.utils.epc import EpcMetrics, calculate_epc, rank_by_epc


@dataclass
class AnalyticsSummary:
    """Click, conversion and revenue rollup."""

    total_clicks: int
    conversions: int
    conversion_rate: float
    total_revenue: float
    epc: float

    @classmethod
    def from_aggregate(cls, aggregate: ClickAggregate) -> "AnalyticsSummary":
        clicks = aggregate.total_clicks
        return cls(
            total_clicks=clicks,
            conversions=aggregate.conversions,
            conversion_rate=aggregate.conversions / clicks if clicks > 0 else 0.0,
            total_revenue=aggregate.total_revenue,
            epc=aggregate.total_revenue / clicks if clicks > 0 else 0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalClicks": self.total_clicks,
            "conversions": self.conversions,
            "conversionRate": self.conversion_rate,
            "totalRevenue": self.total_revenue,
            "epc": self.epc,
        }


@dataclass
class OfferRanking:
    offer_id: str
    title: str
    epc: float
    total_clicks: int
    conversions: int
    rank: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "offerId": self.offer_id,
            "title": self.title,
            "epc": self.epc,
            "totalClicks": self.total_clicks,
            "conversions": self.conversions,
            "rank": self.rank,
        }


class AnalyticsService:
    """Read-only analytics over ClickTrack records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.click_repo = ClickTrackRepository(session)
        self.offer_repo = OfferRepository(session)

    async def _aggregate(self, offer_id: str | None = None, since: datetime | None = None) -> ClickAggregate:
        try:
            return await self.click_repo.aggregate(offer_id=offer_id, since=since)
        except SQLAlchemyError as e:
            raise StoreError("Failed to aggregate click records") from e

    async def get_analytics(self, offer_id: str | None = None) -> AnalyticsSummary:
        """Compute the rollup, optionally for one offer.

        An offer with no clicks (or an unknown offer) yields all zeros.
        """
        aggregate = await self._aggregate(offer_id=offer_id or None)
        return AnalyticsSummary.from_aggregate(aggregate)

    async def get_offer_epc_metrics(self, offer_id: str, since: datetime | None = None) -> EpcMetrics:
        """Rounded EPC metrics for one offer."""
        aggregate = await self._aggregate(offer_id=offer_id, since=since)
        return calculate_epc(aggregate.total_clicks, aggregate.conversions, aggregate.total_revenue)

    async def rank_offers(self, since: datetime | None = None) -> list[OfferRanking]:
        """Rank active offers by EPC, highest first."""
        try:
            offers = await self.offer_repo.list_active()
        except SQLAlchemyError as e:
            raise StoreError("Failed to load offers") from e

        rows = []
        for offer in offers:
            metrics = await self.get_offer_epc_metrics(offer.id, since=since)
            rows.append((offer, metrics))

        return [
            OfferRanking(
                offer_id=offer.id,
                title=offer.title,
                epc=metrics.epc,
                total_clicks=metrics.total_clicks,
                conversions=metrics.total_conversions,
                rank=rank,
            )
            for rank, (offer, metrics) in rank_by_epc(rows, key=lambda row: row[1].epc)
        ]

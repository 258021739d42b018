"""Click track repository."""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from survai.persistence.models.click_track import ClickTrack
from survai.persistence.repositories.base import BaseRepository


@dataclass(frozen=True)
class ClickAggregate:
    """Raw click/conversion/revenue totals over a set of click records."""

    total_clicks: int
    conversions: int
    total_revenue: float


class ClickTrackRepository(BaseRepository[ClickTrack]):
    """Repository for ClickTrack records.

    Records are insert-only apart from the single conditional
    conversion update in ``mark_converted``.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ClickTrack, session)

    async def get_by_click_id(self, click_id: str) -> ClickTrack | None:
        """Get a click record by its external click ID.

        Args:
            click_id: Click correlation token

        Returns:
            ClickTrack or None if not found
        """
        stmt = (
            select(ClickTrack)
            .where(ClickTrack.click_id == click_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_converted(
        self,
        click_id: str,
        converted_at: datetime,
        revenue: float | None = None,
    ) -> bool:
        """Atomically flip ``converted`` from false to true.

        The UPDATE is conditioned on ``converted = false`` so concurrent
        deliveries for the same click produce exactly one transition.

        Args:
            click_id: Click correlation token
            converted_at: Conversion time
            revenue: Optional revenue, only written on the transition

        Returns:
            True if this call performed the transition, False if the
            record is missing or was already converted
        """
        values = {"converted": True, "converted_at": converted_at}
        if revenue is not None:
            values["revenue"] = revenue

        stmt = (
            update(ClickTrack)
            .where(ClickTrack.click_id == click_id, ClickTrack.converted.is_(False))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def aggregate(
        self, offer_id: str | None = None, since: datetime | None = None
    ) -> ClickAggregate:
        """Count clicks and conversions and sum converted revenue.

        Args:
            offer_id: Optional offer filter; None aggregates every record
            since: Optional lower bound on the click timestamp

        Returns:
            ClickAggregate (all zeros when nothing matches)
        """
        converted_revenue = case(
            (ClickTrack.converted.is_(True), func.coalesce(ClickTrack.revenue, 0)),
            else_=0,
        )
        converted_count = case((ClickTrack.converted.is_(True), 1), else_=0)
        stmt = select(
            func.count(ClickTrack.id).label("total_clicks"),
            func.coalesce(func.sum(converted_count), 0).label("conversions"),
            func.coalesce(func.sum(converted_revenue), 0).label("total_revenue"),
        )
        if offer_id is not None:
            stmt = stmt.where(ClickTrack.offer_id == offer_id)
        if since is not None:
            stmt = stmt.where(ClickTrack.timestamp >= since)

        row = (await self.session.execute(stmt)).one()
        return ClickAggregate(
            total_clicks=int(row.total_clicks or 0),
            conversions=int(row.conversions or 0),
            total_revenue=float(row.total_revenue or 0),
        )

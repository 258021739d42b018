"""Tracking facade for click, conversion, analytics and pixel operations.

Validation errors pass through to the caller unchanged. Missing
entities, store failures and anything unexpected are logged with
their detail and re-raised as OperationFailedError carrying only a
generic message.
"""

import logging
import time
from collections.abc import Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survai.core.errors import OperationFailedError, StoreError, TemplatingError, ValidationError
from survai.domain.services.analytics_service import AnalyticsService, AnalyticsSummary, OfferRanking
from survai.domain.services.click_recorder import ClickRecorder, ClickRequest, RecordedClick
from survai.domain.services.conversion_matcher import ConversionMatcher, ConversionResult
from survai.persistence.repositories.offer_repository import OfferRepository
from survai.settings import settings
from survai.utils.url_template import (
    CLICK_ID_TOKEN,
    SURVEY_ID_TOKEN,
    render_url_template,
    render_url_template_lenient,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _operation(name: str, failure_message: str):
    """Map internal errors raised inside an operation to caller failures."""
    try:
        yield
    except ValidationError as e:
        logger.warning(f"{name} rejected: {e.message}", extra={"operation": name})
        raise
    except OperationFailedError:
        raise
    except Exception as e:
        logger.exception(f"{name} failed", extra={"operation": name, "error_type": type(e).__name__})
        raise OperationFailedError(failure_message) from e


class TrackingService:
    """Entry point for tracking operations used by the API layer."""

    def __init__(self, session: AsyncSession, pixel_template: str | None = None) -> None:
        """Initialize tracking service."""
        self.session = session
        self.pixel_template = pixel_template or settings.tracking_pixel_url
        self.recorder = ClickRecorder(session)
        self.matcher = ConversionMatcher(session)
        self.analytics = AnalyticsService(session)
        self.offer_repo = OfferRepository(session)

    async def track_click(
        self,
        payload: Mapping[str, Any] | None,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> RecordedClick:
        """Record a click from a raw request payload.

        Args:
            payload: Decoded JSON body; unknown fields are ignored
            user_agent: Request header fallback for userAgent
            ip_address: Client address fallback for ipAddress
        """
        request = ClickRequest.from_payload(
            payload, default_user_agent=user_agent, default_ip_address=ip_address
        )
        async with _operation("track_click", "Failed to track click"):
            return await self.recorder.record_click(request)

    async def record_conversion(self, click_id: Any, revenue: Any = None) -> ConversionResult:
        """Record a conversion, refreshing the offer metrics hint on first conversion."""
        async with _operation("record_conversion", "Failed to record conversion"):
            result = await self.matcher.record_conversion(click_id, revenue)

        if result.newly_converted:
            await self.refresh_offer_metrics(result.offer_id)
        return result

    async def refresh_offer_metrics(self, offer_id: str) -> None:
        """Recompute and store the offer's non-authoritative metrics hint.

        Failures are logged only; the conversion has already committed.
        """
        try:
            metrics = await self.analytics.get_offer_epc_metrics(offer_id)
            await self.offer_repo.update_metrics(offer_id, metrics.to_dict())
        except (SQLAlchemyError, StoreError):
            await self.session.rollback()
            logger.warning("Offer metrics refresh failed", exc_info=True, extra={"offer_id": offer_id})

    async def get_analytics(self, offer_id: str | None = None) -> AnalyticsSummary:
        async with _operation("get_analytics", "Failed to get analytics"):
            return await self.analytics.get_analytics(offer_id)

    async def rank_offers(self, days: int | None = None) -> list[OfferRanking]:
        since = None
        if days:
            since = datetime.utcnow() - timedelta(days=days)
        async with _operation("rank_offers", "Failed to rank offers"):
            return await self.analytics.rank_offers(since=since)

    def generate_pixel_url(self, click_id: Any, survey_id: Any) -> str:
        """Render the conversion pixel URL for a click.

        Raises:
            ValidationError: If either identifier is missing
        """
        missing = [
            name
            for name, value in (("clickId", click_id), ("surveyId", survey_id))
            if not isinstance(value, str) or not value.strip()
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)} are required")

        values = {
            CLICK_ID_TOKEN: click_id.strip(),
            SURVEY_ID_TOKEN: survey_id.strip(),
            "t": str(int(time.time() * 1000)),
        }
        try:
            return render_url_template(self.pixel_template, values)
        except TemplatingError:
            logger.warning("Malformed pixel template, using literal substitution")
            return render_url_template_lenient(self.pixel_template, values)

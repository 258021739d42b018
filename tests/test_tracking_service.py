"""Tests for the tracking facade."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from survai.core.errors import NotFoundError, OperationFailedError, StoreError, ValidationError
from survai.domain.services.tracking_service import TrackingService


def _db_down() -> OperationalError:
    return OperationalError("SELECT", {}, Exception("database is down"))


class TestTrackClick:
    @pytest.mark.asyncio
    async def test_returns_record_and_redirect(self, db_session, click_payload):
        recorded = await TrackingService(db_session).track_click(click_payload)

        assert recorded.record.offer_id == click_payload["offerId"]
        assert f"click_id={recorded.record.click_id}" in recorded.redirect_url

    @pytest.mark.asyncio
    async def test_header_metadata_used_when_body_omits_it(self, db_session, click_payload):
        del click_payload["userAgent"]
        del click_payload["ipAddress"]

        recorded = await TrackingService(db_session).track_click(
            click_payload, user_agent="Mozilla/5.0 (iPhone) Mobile", ip_address="203.0.113.9"
        )

        assert recorded.record.user_agent == "Mozilla/5.0 (iPhone) Mobile"
        assert recorded.record.ip_address == "203.0.113.9"
        assert recorded.record.session_data["deviceInfo"]["type"] == "MOBILE"

    @pytest.mark.asyncio
    async def test_validation_error_passes_through(self, db_session):
        with pytest.raises(ValidationError):
            await TrackingService(db_session).track_click({"sessionId": "s"})

    @pytest.mark.asyncio
    async def test_missing_offer_becomes_generic_failure(self, db_session, click_payload):
        click_payload["offerId"] = "non-existent-offer"

        with pytest.raises(OperationFailedError) as exc_info:
            await TrackingService(db_session).track_click(click_payload)

        assert exc_info.value.message == "Failed to track click"
        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, NotFoundError)


class TestRecordConversion:
    @pytest.mark.asyncio
    async def test_first_conversion_refreshes_offer_metrics_hint(self, db_session, add_clicks, offer):
        records = await add_clicks(offer, 4)

        result = await TrackingService(db_session).record_conversion(records[0].click_id, "20")
        await db_session.refresh(offer)

        assert result.newly_converted is True
        assert offer.metrics["totalClicks"] == 4
        assert offer.metrics["totalConversions"] == 1
        assert offer.metrics["epc"] == 5.0
        assert "lastUpdated" in offer.metrics

    @pytest.mark.asyncio
    async def test_redelivery_does_not_refresh_metrics(self, db_session, add_clicks, offer):
        records = await add_clicks(offer, 1)
        service = TrackingService(db_session)

        with patch.object(service, "refresh_offer_metrics", AsyncMock()) as refresh:
            await service.record_conversion(records[0].click_id)
            await service.record_conversion(records[0].click_id)

        refresh.assert_awaited_once_with(offer.id)

    @pytest.mark.asyncio
    async def test_metrics_refresh_failure_does_not_fail_conversion(self, db_session, add_clicks, offer):
        records = await add_clicks(offer, 1)
        click_id = records[0].click_id
        service = TrackingService(db_session)

        with patch.object(service.offer_repo, "update_metrics", AsyncMock(side_effect=_db_down())):
            result = await service.record_conversion(click_id, "5")

        assert result.converted is True
        assert result.click_id == click_id

    @pytest.mark.asyncio
    async def test_unknown_click_becomes_generic_failure(self, db_session):
        with pytest.raises(OperationFailedError, match="Failed to record conversion"):
            await TrackingService(db_session).record_conversion("missing-click")

    @pytest.mark.asyncio
    async def test_missing_click_id_is_validation_error(self, db_session):
        with pytest.raises(ValidationError, match="Click ID is required"):
            await TrackingService(db_session).record_conversion(None)


class TestGetAnalytics:
    @pytest.mark.asyncio
    async def test_store_failure_becomes_generic_failure(self, db_session):
        service = TrackingService(db_session)

        with patch.object(service.analytics.click_repo, "aggregate", AsyncMock(side_effect=_db_down())):
            with pytest.raises(OperationFailedError, match="Failed to get analytics") as exc_info:
                await service.get_analytics()

        assert isinstance(exc_info.value.__cause__, StoreError)

    @pytest.mark.asyncio
    async def test_rank_offers_with_window(self, db_session, add_clicks, offer):
        await add_clicks(offer, 2, converted_revenues=(3.0,))

        rankings = await TrackingService(db_session).rank_offers(days=7)

        assert rankings[0].offer_id == offer.id
        assert rankings[0].epc == 1.5


class TestGeneratePixelUrl:
    def test_uses_configured_pixel_template(self):
        service = TrackingService(AsyncMock())

        url = service.generate_pixel_url("abc123", "s1")

        assert url.startswith("https://tracking.survai.app/pixel?click_id=abc123&survey_id=s1&t=")
        assert url.rsplit("t=", 1)[1].isdigit()

    def test_custom_template_with_escaping(self):
        service = TrackingService(AsyncMock(), pixel_template="https://px.io/c/{click_id}?s={survey_id}")

        assert service.generate_pixel_url("a b", "s/1") == "https://px.io/c/a%20b?s=s%2F1"

    def test_malformed_template_degrades(self):
        service = TrackingService(AsyncMock(), pixel_template="https://px.io/?c={click_id}&x={")

        assert service.generate_pixel_url("abc", "s1") == "https://px.io/?c=abc&x={"

    @pytest.mark.parametrize("click_id,survey_id", [(None, "s1"), ("abc", None), ("", ""), ("abc", 5)])
    def test_missing_fields_raise_validation_error(self, click_id, survey_id):
        with pytest.raises(ValidationError, match="required"):
            TrackingService(AsyncMock()).generate_pixel_url(click_id, survey_id)

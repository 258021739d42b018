"""Click tracking, conversion and analytics endpoints.

These endpoints are public: they are called by end-user browsers and
affiliate networks, not by authenticated admins.
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request

from survai.api.deps import get_tracking_service
from survai.api.responses import ok
from survai.api.schemas.tracking import (
    AnalyticsData,
    ApiResponse,
    ClickTrackOut,
    ConversionData,
    OfferRankingData,
    PixelData,
    TrackClickData,
)
from survai.domain.services.conversion_matcher import ConversionResult
from survai.domain.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)

router = APIRouter()

TrackingServiceDep = Annotated[TrackingService, Depends(get_tracking_service)]

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_payload(request: Request) -> dict[str, Any]:
    """Read a JSON or form body leniently.

    Empty, undecodable or non-object bodies read as an empty payload so
    missing fields are reported by the service instead of failing here.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Undecodable request body", extra={"path": request.url.path})
        return {}
    return data if isinstance(data, dict) else {}


def _conversion_response(result: ConversionResult) -> ApiResponse[ConversionData]:
    return ok(ConversionData(converted=result.converted, click_id=result.click_id))


@router.post("/click", response_model=ApiResponse[TrackClickData], response_model_exclude_unset=True)
async def track_click(request: Request, service: TrackingServiceDep) -> ApiResponse[TrackClickData]:
    """Record a CTA offer click and return the redirect URL."""
    payload = await read_payload(request)
    recorded = await service.track_click(
        payload,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    return ok(
        TrackClickData(
            click_track=ClickTrackOut.model_validate(recorded.record.to_dict()),
            redirect_url=recorded.redirect_url,
        )
    )


@router.get("/conversion", response_model=ApiResponse[ConversionData], response_model_exclude_unset=True)
async def record_conversion_get(
    service: TrackingServiceDep,
    click_id: Annotated[str | None, Query()] = None,
    revenue: Annotated[str | None, Query()] = None,
) -> ApiResponse[ConversionData]:
    """Conversion pixel callback."""
    result = await service.record_conversion(click_id, revenue)
    return _conversion_response(result)


@router.post("/conversion", response_model=ApiResponse[ConversionData], response_model_exclude_unset=True)
async def record_conversion_post(request: Request, service: TrackingServiceDep) -> ApiResponse[ConversionData]:
    """Conversion postback. ``click_id`` and ``revenue`` may be in the query or body."""
    payload = await read_payload(request)
    click_id = request.query_params.get("click_id") or payload.get("click_id")
    revenue = request.query_params.get("revenue", payload.get("revenue"))
    result = await service.record_conversion(click_id, revenue)
    return _conversion_response(result)


@router.get("/analytics", response_model=ApiResponse[AnalyticsData], response_model_exclude_unset=True)
async def get_analytics(
    service: TrackingServiceDep,
    offer_id: Annotated[str | None, Query(alias="offerId")] = None,
) -> ApiResponse[AnalyticsData]:
    """Click, conversion, revenue and EPC rollup, optionally for one offer."""
    summary = await service.get_analytics(offer_id)
    return ok(AnalyticsData.model_validate(summary.to_dict()))


@router.post("/pixel", response_model=ApiResponse[PixelData], response_model_exclude_unset=True)
async def generate_pixel(request: Request, service: TrackingServiceDep) -> ApiResponse[PixelData]:
    """Generate the conversion pixel URL for a click."""
    payload = await read_payload(request)
    pixel_url = service.generate_pixel_url(payload.get("clickId"), payload.get("surveyId"))
    return ok(PixelData(pixel_url=pixel_url))


@router.get("/pixel/{click_id}", response_model=ApiResponse[ConversionData], response_model_exclude_unset=True)
async def handle_pixel(
    click_id: str,
    service: TrackingServiceDep,
    revenue: Annotated[str | None, Query()] = None,
) -> ApiResponse[ConversionData]:
    """Pixel fired by the affiliate network on conversion."""
    result = await service.record_conversion(click_id, revenue)
    return _conversion_response(result)


@router.get(
    "/offers/ranking",
    response_model=ApiResponse[list[OfferRankingData]],
    response_model_exclude_unset=True,
)
async def rank_offers(
    service: TrackingServiceDep,
    days: Annotated[int | None, Query(ge=1, le=365)] = None,
) -> ApiResponse[list[OfferRankingData]]:
    """Active offers ranked by EPC, optionally over the last ``days`` days."""
    rankings = await service.rank_offers(days=days)
    return ok([OfferRankingData.model_validate(r.to_dict()) for r in rankings])

"""Pydantic schemas for tracking endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[DataT]):
    """Standard response envelope."""

    success: bool
    data: DataT | None = None
    error: str | None = None
    timestamp: str


class ClickTrackOut(CamelModel):
    id: str
    click_id: str
    session_id: str
    question_id: str
    offer_id: str
    button_variant_id: str
    timestamp: datetime
    user_agent: str | None = None
    ip_address: str | None = None
    session: dict[str, Any] | None = None
    status: str
    converted: bool
    revenue: float | None = None
    converted_at: datetime | None = None


class TrackClickData(CamelModel):
    click_track: ClickTrackOut
    redirect_url: str


class ConversionData(CamelModel):
    converted: bool
    click_id: str


class AnalyticsData(CamelModel):
    total_clicks: int
    conversions: int
    conversion_rate: float
    total_revenue: float
    epc: float


class PixelData(CamelModel):
    pixel_url: str


class OfferRankingData(CamelModel):
    offer_id: str
    title: str
    epc: float
    total_clicks: int
    conversions: int
    rank: int

"""Click recorder: validates click requests and persists ClickTrack records."""

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survai.core.coercion import coerce_timestamp
from survai.core.errors import NotFoundError, StoreError, TemplatingError, ValidationError
from survai.persistence.models.click_track import (
    CLICK_STATUS_INVALID,
    CLICK_STATUS_VALID,
    ClickTrack,
)
from survai.persistence.repositories.click_track_repository import ClickTrackRepository
from survai.persistence.repositories.offer_repository import OfferRepository
from survai.persistence.repositories.question_repository import QuestionRepository
from survai.utils.url_template import (
    CLICK_ID_TOKEN,
    SESSION_ID_TOKEN,
    SURVEY_ID_TOKEN,
    append_query_param,
    render_url_template,
    render_url_template_lenient,
    template_tokens,
)
from survai.utils.user_agent import detect_device_type, is_mobile_device

logger = logging.getLogger(__name__)

MAX_ID_LENGTH = 255


def _identifier(value: Any) -> str | None:
    """Accept non-empty strings and plain numbers as identifiers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    return value[:MAX_ID_LENGTH]


def _optional_text(value: Any) -> str | None:
    if not isinstance(value, str) or not value:
        return None
    return value


@dataclass
class ClickRequest:
    """Recognized fields of an inbound click request.

    Built with ``from_payload``, which keeps only known fields and
    drops anything it cannot use instead of rejecting the request.
    """

    session_id: str | None = None
    question_id: str | None = None
    offer_id: str | None = None
    button_variant_id: str | None = None
    timestamp: Any = None
    user_agent: str | None = None
    ip_address: str | None = None

    REQUIRED_FIELDS = (
        ("session_id", "sessionId"),
        ("question_id", "questionId"),
        ("offer_id", "offerId"),
        ("button_variant_id", "buttonVariantId"),
    )

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any] | None,
        default_user_agent: str | None = None,
        default_ip_address: str | None = None,
    ) -> "ClickRequest":
        payload = payload if isinstance(payload, Mapping) else {}
        return cls(
            session_id=_identifier(payload.get("sessionId")),
            question_id=_identifier(payload.get("questionId")),
            offer_id=_identifier(payload.get("offerId")),
            button_variant_id=_identifier(payload.get("buttonVariantId")),
            timestamp=payload.get("timestamp"),
            user_agent=_optional_text(payload.get("userAgent"))
            or _optional_text(default_user_agent),
            ip_address=_optional_text(payload.get("ipAddress"))
            or _optional_text(default_ip_address),
        )

    def missing_fields(self) -> list[str]:
        return [name for attr, name in self.REQUIRED_FIELDS if getattr(self, attr) is None]


@dataclass
class RecordedClick:
    """Result of recording a click."""

    record: ClickTrack
    redirect_url: str


def generate_click_id() -> str:
    """Mint an unguessable, globally unique click correlation token."""
    return str(uuid.uuid4())


def build_redirect_url(
    destination_template: str,
    click_id: str,
    survey_id: str,
    session_id: str | None = None,
) -> str:
    """Render an offer destination URL for one click.

    A malformed template degrades to literal substitution. When the
    template has no click token the click ID is appended as a query
    parameter so the conversion can still be attributed.
    """
    values: dict[str, str] = {
        CLICK_ID_TOKEN: click_id,
        SURVEY_ID_TOKEN: survey_id,
    }
    if session_id:
        values[SESSION_ID_TOKEN] = session_id

    try:
        url = render_url_template(destination_template, values)
    except TemplatingError:
        logger.warning(
            "Malformed destination template, using literal substitution",
            extra={"click_id": click_id, "template": destination_template[:200]},
        )
        url = render_url_template_lenient(destination_template, values)

    if CLICK_ID_TOKEN not in template_tokens(destination_template):
        url = append_query_param(url, CLICK_ID_TOKEN, click_id)
    return url


class ClickRecorder:
    """Records offer button clicks and builds their redirect URLs."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize click recorder."""
        self.session = session
        self.click_repo = ClickTrackRepository(session)
        self.offer_repo = OfferRepository(session)
        self.question_repo = QuestionRepository(session)

    async def record_click(self, request: ClickRequest) -> RecordedClick:
        """Record a click and return the stored record with its redirect URL.

        Args:
            request: Parsed click request

        Returns:
            RecordedClick with the persisted ClickTrack

        Raises:
            ValidationError: If a required field is missing (before any store access)
            NotFoundError: If the offer or question does not exist
            StoreError: If the store fails; nothing is committed
        """
        missing = request.missing_fields()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)} are required")

        server_time = datetime.utcnow()
        event_time = coerce_timestamp(request.timestamp, fallback=server_time)

        try:
            offer = await self.offer_repo.get_by_id(request.offer_id)
            if offer is None:
                raise NotFoundError(f"Offer {request.offer_id} not found")

            survey_id = await self.question_repo.get_survey_id(request.question_id)
            if survey_id is None:
                raise NotFoundError(f"Question {request.question_id} not found")

            click_id = generate_click_id()
            redirect_url = build_redirect_url(
                offer.destination_url, click_id, survey_id, request.session_id
            )

            # Clicks on offers that are not live are kept for auditing but flagged
            status = CLICK_STATUS_VALID if offer.is_active else CLICK_STATUS_INVALID

            record = await self.click_repo.create(
                click_id=click_id,
                session_id=request.session_id,
                question_id=request.question_id,
                offer_id=offer.id,
                button_variant_id=request.button_variant_id,
                timestamp=event_time,
                user_agent=request.user_agent,
                ip_address=request.ip_address,
                session_data={
                    "sessionId": request.session_id,
                    "clickId": click_id,
                    "ipAddress": request.ip_address,
                    "userAgent": request.user_agent,
                    "deviceInfo": {
                        "type": detect_device_type(request.user_agent),
                        "isMobile": is_mobile_device(request.user_agent),
                    },
                },
                status=status,
                converted=False,
                created_at=server_time,
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError("Failed to persist click") from e

        logger.info(
            "Click recorded",
            extra={
                "click_id": record.click_id,
                "offer_id": record.offer_id,
                "question_id": record.question_id,
                "click_status": record.status,
            },
        )
        return RecordedClick(record=record, redirect_url=redirect_url)

"""Lenient parsing of optional tracking inputs.

Malformed optional fields fall back to a default instead of failing
the request: a bad timestamp becomes server time and a bad revenue
becomes "no revenue".
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any

from survai.core.errors import MalformedInputError

logger = logging.getLogger(__name__)

# Epoch values below this are read as seconds, above it as milliseconds
# (1e11 seconds is the year 5138, 1e11 ms is March 1973).
_EPOCH_MS_THRESHOLD = 1e11

# Largest amount click_tracks.revenue (NUMERIC(12, 2)) can hold
MAX_REVENUE = 9_999_999_999.99


def _from_epoch(value: float) -> datetime:
    if not math.isfinite(value) or value <= 0:
        raise MalformedInputError(f"timestamp out of range: {value!r}")
    seconds = value / 1000 if value >= _EPOCH_MS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedInputError(f"timestamp out of range: {value!r}") from e


def parse_timestamp(value: Any) -> datetime:
    """Parse a client timestamp into a naive UTC datetime.

    Accepts epoch milliseconds or seconds (numbers or numeric strings)
    and ISO-8601 strings.

    Raises:
        MalformedInputError: If the value is not a usable time value.
    """
    if isinstance(value, bool):
        raise MalformedInputError(f"timestamp must not be boolean: {value!r}")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        return _from_epoch(float(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise MalformedInputError("timestamp is empty")
        try:
            numeric = float(text)
        except ValueError:
            numeric = None
        if numeric is not None:
            return _from_epoch(numeric)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as e:
            raise MalformedInputError(f"unparseable timestamp: {value!r}") from e
    else:
        raise MalformedInputError(f"unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        except (OverflowError, ValueError) as e:
            raise MalformedInputError(f"timestamp out of range: {value!r}") from e
    return parsed


def coerce_timestamp(value: Any, fallback: datetime) -> datetime:
    """Parse a timestamp, returning ``fallback`` when absent or malformed."""
    if value is None:
        return fallback
    try:
        return parse_timestamp(value)
    except MalformedInputError as e:
        logger.warning(
            "Malformed click timestamp, using server time",
            extra={"raw_timestamp": repr(value)[:100], "reason": str(e)},
        )
        return fallback


def parse_revenue(value: Any) -> float:
    """Parse a conversion revenue amount rounded to cents.

    Raises:
        MalformedInputError: If the value is not a finite, non-negative number
            or is larger than MAX_REVENUE.
    """
    if isinstance(value, bool):
        raise MalformedInputError(f"revenue must not be boolean: {value!r}")
    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        try:
            amount = float(value.strip())
        except ValueError as e:
            raise MalformedInputError(f"unparseable revenue: {value!r}") from e
    else:
        raise MalformedInputError(f"unsupported revenue type: {type(value).__name__}")

    if not math.isfinite(amount) or amount < 0:
        raise MalformedInputError(f"revenue must be a non-negative amount: {value!r}")
    amount = round(amount, 2)
    if amount > MAX_REVENUE:
        raise MalformedInputError(f"revenue exceeds {MAX_REVENUE}: {value!r}")
    return amount


def coerce_revenue(value: Any) -> float | None:
    """Parse revenue, treating absent or malformed values as no revenue."""
    if value is None or value == "":
        return None
    try:
        return parse_revenue(value)
    except MalformedInputError as e:
        logger.warning(
            "Malformed conversion revenue ignored",
            extra={"raw_revenue": repr(value)[:100], "reason": str(e)},
        )
        return None

"""Earnings-per-click calculations for offer performance."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Sequence, TypeVar


@dataclass
class EpcMetrics:
    """Rounded EPC metrics for an offer."""

    total_clicks: int
    total_conversions: int
    total_revenue: float
    conversion_rate: float
    epc: float
    last_updated: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the camelCase shape stored on Offer.metrics."""
        return {
            "totalClicks": self.total_clicks,
            "totalConversions": self.total_conversions,
            "totalRevenue": self.total_revenue,
            "conversionRate": self.conversion_rate,
            "epc": self.epc,
            "lastUpdated": self.last_updated.isoformat() + "Z",
        }


@dataclass
class EpcDelta:
    delta: float
    percentage: float
    trend: Literal["up", "down", "flat"]


def calculate_epc(total_clicks: int, total_conversions: int, total_revenue: float) -> EpcMetrics:
    """Calculate EPC and conversion rate, rounded to 2 decimals.

    Zero clicks yields zero rates rather than a division error.
    """
    epc = total_revenue / total_clicks if total_clicks > 0 else 0.0
    conversion_rate = total_conversions / total_clicks if total_clicks > 0 else 0.0
    return EpcMetrics(
        total_clicks=total_clicks,
        total_conversions=total_conversions,
        total_revenue=round(total_revenue, 2),
        conversion_rate=round(conversion_rate, 4),
        epc=round(epc, 2),
    )


def calculate_epc_delta(current_epc: float, previous_epc: float) -> EpcDelta:
    """Compare two EPC values."""
    delta = current_epc - previous_epc
    percentage = (delta / previous_epc) * 100 if previous_epc > 0 else 0.0

    if abs(delta) < 0.01:
        trend = "flat"
    elif delta > 0:
        trend = "up"
    else:
        trend = "down"

    return EpcDelta(delta=round(delta, 2), percentage=round(percentage, 2), trend=trend)


def validate_epc_metrics(metrics: EpcMetrics) -> bool:
    """Check metrics for internal consistency.

    Raises:
        ValueError: If any invariant is violated.
    """
    if metrics.total_clicks < 0 or metrics.total_conversions < 0 or metrics.total_revenue < 0:
        raise ValueError("EPC metrics cannot have negative values")
    if metrics.total_conversions > metrics.total_clicks:
        raise ValueError("Conversions cannot exceed total clicks")
    if not 0 <= metrics.conversion_rate <= 1:
        raise ValueError("Conversion rate must be between 0 and 1")
    if metrics.epc < 0:
        raise ValueError("EPC cannot be negative")
    return True


RankedT = TypeVar("RankedT")


def rank_by_epc(items: Sequence[RankedT], key=lambda item: item["epc"]) -> list[tuple[int, RankedT]]:
    """Order items by EPC, highest first, pairing each with its 1-based rank."""
    ordered = sorted(items, key=key, reverse=True)
    return [(index + 1, item) for index, item in enumerate(ordered)]

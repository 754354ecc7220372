"""Named thresholds shared by both feed estimators."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class EstimationPolicy:
    """Freshness, distance, heading and time limits for arrival estimates.

    Both estimators take the same policy object so the structured and
    binary paths cannot drift apart.
    """

    max_data_age_seconds: float = 300.0  # older reports are likely out of service
    heading_tolerance_degrees: float = 60.0
    min_distance_km: float = 0.05  # closer than this is parked, not approaching
    max_distance_km: float = 10.0

    # assumed speeds for distance-based estimates
    urban_bus_speed_kmh: float = 15.0  # structured feed fallback
    average_bus_speed_kmh: float = 20.0  # binary feed

    max_timed_seconds: int = 3600  # expected / aimed times
    max_estimated_seconds: int = 1800  # distance / speed estimates

    max_arrivals: int = 10


DEFAULT_POLICY = EstimationPolicy()


def seconds_for_distance(distance_km: float, speed_kmh: float) -> int:
    """Travel time in whole seconds for a distance at a constant speed."""
    return round(distance_km / speed_kmh * 3600)


def is_stale(reported_at: datetime | None, now: datetime, max_age_seconds: float) -> bool:
    """True if a report is older than the freshness window.

    Reports without a timestamp are kept; there is nothing to judge them by.
    """
    if reported_at is None:
        return False
    return (now - reported_at).total_seconds() > max_age_seconds

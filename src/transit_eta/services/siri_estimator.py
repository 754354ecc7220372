"""Primary arrival estimator backed by the BODS SIRI-VM feed.

SIRI-VM carries each vehicle's next call and onward calls, so arrivals come
from the predicted or timetabled time at the matching call. Only when a call
has no times at all do we fall back to distance / speed.
"""

import logging
from datetime import UTC, datetime, timedelta

from transit_eta.data.config import EstimatorConfig
from transit_eta.data.siri_client import SiriVmClient
from transit_eta.estimation.geo import bounding_box, distance_km
from transit_eta.estimation.policy import (
    DEFAULT_POLICY,
    EstimationPolicy,
    is_stale,
    seconds_for_distance,
)
from transit_eta.estimation.ranking import rank_arrivals
from transit_eta.exceptions import FeedDecodeError, UpstreamError
from transit_eta.matching.stop_ids import is_matching_stop_id
from transit_eta.models.realtime import JourneyCall, VehicleActivity
from transit_eta.models.responses import Arrival, ArrivalsResult, Stop

logger = logging.getLogger(__name__)


def find_matching_call(
    activity: VehicleActivity, alias_ids: list[str]
) -> tuple[JourneyCall, int] | None:
    """Find the target stop in a vehicle's upcoming calls.

    The next call is checked first (0 stops away), then onward calls in
    order. The first match wins; a journey visiting the stop twice is not
    modelled.

    Returns:
        (matching call, stops away) or None.
    """
    if activity.monitored_call and is_matching_stop_id(
        activity.monitored_call.stop_point_ref, alias_ids
    ):
        return activity.monitored_call, 0

    for index, call in enumerate(activity.onward_calls):
        if is_matching_stop_id(call.stop_point_ref, alias_ids):
            return call, index + 1

    return None


def describe_stops_away(stops_away: int) -> str:
    if stops_away == 0:
        return "Approaching"
    if stops_away == 1:
        return "1 stop away"
    return f"{stops_away} stops away"


def estimate_activity_arrival(
    activity: VehicleActivity,
    call: JourneyCall,
    stops_away: int,
    stop: Stop,
    vehicle_id: str,
    now: datetime,
    policy: EstimationPolicy = DEFAULT_POLICY,
) -> Arrival | None:
    """Derive an arrival for a vehicle whose calls include the target stop.

    Time priority: expected time, then aimed time, then distance at urban
    bus speed. Returns None when the result is negative or beyond the
    ceiling for its source.
    """
    call_time = call.expected_time or call.aimed_time

    if call_time is not None:
        seconds = round((call_time - now).total_seconds())
        ceiling = policy.max_timed_seconds
        current_location = describe_stops_away(stops_away)
    elif activity.has_position:
        distance = distance_km(activity.latitude, activity.longitude, stop.lat, stop.lon)
        seconds = seconds_for_distance(distance, policy.urban_bus_speed_kmh)
        ceiling = policy.max_estimated_seconds
        current_location = f"{distance:.1f}km away"
    else:
        return None

    if seconds < 0 or seconds > ceiling:
        return None

    destination = activity.destination_name or "Unknown destination"

    return Arrival(
        id=f"{vehicle_id}-{stop.stop_id}",
        line_name=activity.line_name,
        destination=destination,
        time_to_station=seconds,
        expected_arrival=now + timedelta(seconds=seconds),
        vehicle_id=vehicle_id,
        current_location=current_location,
        towards=destination,
        mode="bus",
    )


def estimate_from_activities(
    activities: list[VehicleActivity],
    alias_ids: list[str],
    stop: Stop,
    now: datetime | None = None,
    policy: EstimationPolicy = DEFAULT_POLICY,
) -> list[Arrival]:
    """Turn SIRI-VM vehicle activity into ranked arrivals at one stop.

    Args:
        activities: Decoded VehicleActivity records.
        alias_ids: Every identifier the target stop may appear under.
        stop: Target stop (coordinates used for the distance fallback).
        now: Reference time (default: current UTC time).
        policy: Freshness, speed and ceiling limits.

    Returns:
        Arrivals deduplicated by (vehicle, line), sorted ascending, capped.
    """
    if now is None:
        now = datetime.now(UTC)

    arrivals: list[Arrival] = []
    stale_count = 0

    for index, activity in enumerate(activities):
        if is_stale(activity.recorded_at, now, policy.max_data_age_seconds):
            stale_count += 1
            continue

        match = find_matching_call(activity, alias_ids)
        if match is None:
            continue

        call, stops_away = match
        vehicle_id = activity.vehicle_ref or f"unknown-{index}"
        arrival = estimate_activity_arrival(
            activity, call, stops_away, stop, vehicle_id, now, policy
        )
        if arrival is not None:
            arrivals.append(arrival)

    logger.debug(
        f"[SIRI-VM] {len(activities)} activities, {stale_count} stale, "
        f"{len(arrivals)} matched stop {stop.stop_id}"
    )

    return rank_arrivals(arrivals, policy.max_arrivals)


class SiriVmEstimator:
    """Fetches SIRI-VM around a stop and estimates arrivals from call lists."""

    def __init__(self, config: EstimatorConfig, policy: EstimationPolicy = DEFAULT_POLICY):
        self._config = config
        self._policy = policy

    async def estimate(self, alias_ids: list[str], stop: Stop) -> ArrivalsResult:
        """Estimate arrivals at a stop.

        Upstream failures come back as a failure result rather than an
        exception, so the caller can fall back. A malformed document is
        treated as no data.
        """
        if not self._config.bods_api_key:
            return ArrivalsResult.failure("BODS API key not configured", status_code=401)

        bbox = bounding_box(stop.lat, stop.lon, self._config.search_radius_km)

        try:
            async with SiriVmClient(self._config) as client:
                data = await client.fetch_vehicle_activity(bbox)
        except UpstreamError as e:
            logger.warning(f"[SIRI-VM] Fetch failed for stop {stop.stop_id}: {e.message}")
            return ArrivalsResult.failure(e.message, status_code=e.status_code)
        except FeedDecodeError as e:
            logger.warning(f"[SIRI-VM] {e}")
            return ArrivalsResult.ok()

        arrivals = estimate_from_activities(
            data.activities, alias_ids, stop, policy=self._policy
        )
        logger.info(f"[SIRI-VM] Parsed {len(arrivals)} arrivals for stop {stop.stop_id}")
        return ArrivalsResult.ok(arrivals)

"""Fallback arrival estimator backed by BODS GTFS-RT vehicle positions.

This feed has positions only, no per-stop calls, so a vehicle counts as
approaching when it is within range, moving and pointed at the stop. The
arrival time is distance over an assumed average speed.
"""

import logging
import math
import re
from datetime import UTC, datetime, timedelta

from transit_eta.data.config import EstimatorConfig
from transit_eta.data.gtfsrt_client import GTFSRTClient
from transit_eta.estimation.geo import (
    bearing_degrees,
    bounding_box,
    distance_km,
    is_heading_toward,
)
from transit_eta.estimation.policy import (
    DEFAULT_POLICY,
    EstimationPolicy,
    is_stale,
    seconds_for_distance,
)
from transit_eta.estimation.ranking import rank_arrivals
from transit_eta.models.realtime import VehicleReport, VehicleReportsData
from transit_eta.models.responses import Arrival, ArrivalsResult, Stop

logger = logging.getLogger(__name__)

# Route ids that already look like a public line number: "7", "42", "5A" style
LINE_NUMBER = re.compile(r"^\d{1,3}[A-Z]?$")
EMBEDDED_LINE_NUMBER = re.compile(r"[_-]?(\d{1,3}[A-Z]?)[_-]?")


def extract_line_name(route_id: str | None, trip_id: str | None) -> str:
    """Best-effort public line label from GTFS-RT route / trip ids.

    Examples:
        "42" -> "42"
        "FBRI_X39_outbound" -> "39"
        "RT-ABCD" -> "ABCD"
    """
    if route_id:
        if LINE_NUMBER.match(route_id):
            return route_id
        match = EMBEDDED_LINE_NUMBER.search(route_id)
        if match:
            return match.group(1)
        return route_id[-4:]

    if trip_id:
        return trip_id[-4:]
    return "?"


def estimate_vehicle_arrival(
    vehicle: VehicleReport,
    stop: Stop,
    now: datetime,
    policy: EstimationPolicy = DEFAULT_POLICY,
) -> Arrival | None:
    """Estimate one vehicle's arrival, or None if it is filtered out."""
    if not (math.isfinite(vehicle.latitude) and math.isfinite(vehicle.longitude)):
        return None

    if vehicle.timestamp is not None:
        reported_at = datetime.fromtimestamp(vehicle.timestamp, tz=UTC)
        if is_stale(reported_at, now, policy.max_data_age_seconds):
            return None

    distance = distance_km(vehicle.latitude, vehicle.longitude, stop.lat, stop.lon)
    if distance > policy.max_distance_km or distance < policy.min_distance_km:
        return None

    # positions alone cannot tell direction, so no bearing means no match
    if vehicle.bearing is None:
        return None

    bearing_to_stop = bearing_degrees(vehicle.latitude, vehicle.longitude, stop.lat, stop.lon)
    if not is_heading_toward(vehicle.bearing, bearing_to_stop, policy.heading_tolerance_degrees):
        return None

    seconds = seconds_for_distance(distance, policy.average_bus_speed_kmh)
    if seconds > policy.max_estimated_seconds:
        return None

    return Arrival(
        id=f"{vehicle.vehicle_id}-{stop.stop_id}",
        line_name=extract_line_name(vehicle.route_id, vehicle.trip_id),
        destination="Via this stop",
        time_to_station=seconds,
        expected_arrival=now + timedelta(seconds=seconds),
        vehicle_id=vehicle.vehicle_id,
        current_location=f"{distance:.1f}km away",
        towards=f"Route {vehicle.route_id[-6:]}" if vehicle.route_id else None,
        mode="bus",
    )


def estimate_from_vehicles(
    vehicles: list[VehicleReport],
    stop: Stop,
    now: datetime | None = None,
    policy: EstimationPolicy = DEFAULT_POLICY,
) -> list[Arrival]:
    """Convert vehicle positions into ranked arrival estimates for a stop."""
    if now is None:
        now = datetime.now(UTC)

    arrivals = [
        arrival
        for vehicle in vehicles
        if (arrival := estimate_vehicle_arrival(vehicle, stop, now, policy)) is not None
    ]

    logger.debug(
        f"[GTFS-RT] {len(vehicles)} vehicles, {len(arrivals)} approaching stop {stop.stop_id}"
    )

    return rank_arrivals(arrivals, policy.max_arrivals)


class GTFSRTEstimator:
    """Fetches GTFS-RT positions around a stop and estimates arrivals."""

    def __init__(self, config: EstimatorConfig, policy: EstimationPolicy = DEFAULT_POLICY):
        self._config = config
        self._policy = policy

    async def _fetch(self, stop: Stop) -> VehicleReportsData:
        async with GTFSRTClient(self._config) as client:
            if self._config.gtfsrt_operator_refs:
                return await client.fetch_vehicle_positions_for_operators(
                    self._config.gtfsrt_operator_refs,
                    self._config.gtfsrt_min_vehicles,
                )
            bbox = bounding_box(stop.lat, stop.lon, self._config.search_radius_km)
            return await client.fetch_vehicle_positions(bbox)

    async def estimate(self, stop: Stop) -> ArrivalsResult:
        """Estimate arrivals at a stop.

        Always succeeds: any fetch or decode problem means no arrivals.
        """
        try:
            data = await self._fetch(stop)
        except Exception as e:
            logger.warning(f"[GTFS-RT] No vehicle data for stop {stop.stop_id}: {e}")
            return ArrivalsResult.ok()

        if not data.vehicles:
            logger.info("[GTFS-RT] No vehicles found in area")
            return ArrivalsResult.ok()

        arrivals = estimate_from_vehicles(data.vehicles, stop, policy=self._policy)
        logger.info(f"[GTFS-RT] Estimated {len(arrivals)} arrivals for stop {stop.stop_id}")
        return ArrivalsResult.ok(arrivals)

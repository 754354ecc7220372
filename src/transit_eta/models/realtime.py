"""Pydantic models for decoded real-time feed records.

These models represent the subset of SIRI-VM and GTFS-RT fields the
estimators actually use. They live only for the duration of one request.
"""

import math
from datetime import datetime

from pydantic import BaseModel


class JourneyCall(BaseModel):
    """A stop in a vehicle's upcoming call list (SIRI MonitoredCall / OnwardCall)."""

    stop_point_ref: str
    stop_point_name: str | None = None
    expected_arrival_time: datetime | None = None
    aimed_arrival_time: datetime | None = None
    expected_departure_time: datetime | None = None
    aimed_departure_time: datetime | None = None

    @property
    def expected_time(self) -> datetime | None:
        """Real-time prediction, arrival preferred over departure."""
        return self.expected_arrival_time or self.expected_departure_time

    @property
    def aimed_time(self) -> datetime | None:
        """Timetabled time, arrival preferred over departure."""
        return self.aimed_arrival_time or self.aimed_departure_time


class VehicleActivity(BaseModel):
    """One SIRI-VM VehicleActivity block."""

    recorded_at: datetime | None = None
    line_ref: str | None = None
    published_line_name: str | None = None
    destination_name: str | None = None
    vehicle_ref: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    monitored_call: JourneyCall | None = None
    onward_calls: list[JourneyCall] = []

    @property
    def line_name(self) -> str:
        return self.published_line_name or self.line_ref or "?"

    @property
    def has_position(self) -> bool:
        return all(
            value is not None and value != 0 and math.isfinite(value)
            for value in (self.latitude, self.longitude)
        )


class SiriVmData(BaseModel):
    """Decoded SIRI-VM service delivery."""

    activities: list[VehicleActivity] = []
    fetched_at: datetime


class VehicleReport(BaseModel):
    """A GTFS-RT vehicle position reduced to what arrival estimation needs."""

    vehicle_id: str
    latitude: float
    longitude: float
    bearing: float | None = None
    timestamp: int | None = None  # unix seconds
    route_id: str | None = None
    trip_id: str | None = None


class VehicleReportsData(BaseModel):
    """Decoded GTFS-RT vehicle positions feed."""

    vehicles: list[VehicleReport] = []
    fetched_at: datetime

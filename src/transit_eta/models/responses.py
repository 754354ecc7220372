import math
from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Stop(BaseModel):
    stop_id: str = Field(description="Canonical stop identifier (NaPTAN / ATCO code)")
    stop_code: str | None = Field(default=None, description="Short public stop code")
    name: str | None = None
    lat: float = 0.0
    lon: float = 0.0
    lines: list[str] = Field(default_factory=list, description="Line ids serving this stop")
    is_group: bool = Field(default=False, description="True for parent/group stops")

    @property
    def has_location(self) -> bool:
        """(0, 0), a zero or a non-finite coordinate means the location is unknown."""
        return all(value and math.isfinite(value) for value in (self.lat, self.lon))


class BoundingBox(BaseModel):
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def to_query(self) -> str:
        """Render as the minLon,minLat,maxLon,maxLat string BODS expects."""
        return ",".join(
            f"{value:.4f}" for value in (self.min_lon, self.min_lat, self.max_lon, self.max_lat)
        )


class Arrival(BaseModel):
    """A single predicted or estimated arrival at a stop."""

    id: str
    line_name: str
    destination: str
    time_to_station: int = Field(ge=0, description="Seconds until the vehicle reaches the stop")
    expected_arrival: datetime
    vehicle_id: str
    current_location: str = Field(description="Human-readable vehicle location")
    towards: str | None = None
    mode: str = "bus"


class ArrivalsResult(BaseModel):
    """Success envelope or failure signal from a provider or estimator.

    Failures carry ``success=False``, an error message and, for HTTP failures,
    the upstream status code.
    """

    success: bool
    data: list[Arrival] = Field(default_factory=list)
    error: str | None = None
    status_code: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def ok(cls, arrivals: list[Arrival] | None = None) -> "ArrivalsResult":
        return cls(success=True, data=arrivals or [])

    @classmethod
    def failure(cls, error: str, status_code: int | None = None) -> "ArrivalsResult":
        return cls(success=False, error=error, status_code=status_code)


class ArrivalWithFormatted(Arrival):
    time_formatted: str = Field(description="Display string, e.g. 'Due' or '5 mins'")


class ArrivalsResponse(BaseModel):
    """Response for the get_arrivals tool."""

    stop_id: str
    provider: str = Field(description="Provider that served the request (tfl or bods)")
    arrivals: list[ArrivalWithFormatted]
    count: int = Field(description="Number of arrivals returned")
    success: bool = True
    error: str | None = None
    status_code: int | None = None

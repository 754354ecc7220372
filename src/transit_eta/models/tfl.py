"""Pydantic models for the TfL Unified API arrival predictions.

Only the fields we map onto Arrival are modelled; TfL sends many more.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TflArrival(BaseModel):
    """One prediction from /StopPoint/{id}/Arrivals."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    naptan_id: str | None = Field(default=None, alias="naptanId")
    line_id: str | None = Field(default=None, alias="lineId")
    line_name: str = Field(default="unknown", alias="lineName")
    destination_name: str | None = Field(default=None, alias="destinationName")
    time_to_station: int = Field(default=0, alias="timeToStation")
    expected_arrival: datetime = Field(alias="expectedArrival")
    vehicle_id: str = Field(default="unknown", alias="vehicleId")
    current_location: str | None = Field(default=None, alias="currentLocation")
    towards: str | None = None
    mode_name: str = Field(default="bus", alias="modeName")

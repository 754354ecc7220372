"""Shared fixtures: feed builders and a patched httpx client."""

from collections.abc import Callable, Iterator
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from google.transit import gtfs_realtime_pb2

from transit_eta.data.config import EstimatorConfig

SIRI_NS = "http://www.siri.org.uk/siri"


def _call_xml(tag: str, call: dict) -> str:
    parts = [f"<StopPointRef>{call['ref']}</StopPointRef>"]
    if "order" in call:
        parts.append(f"<Order>{call['order']}</Order>")
    for key, element in (
        ("expected_arrival", "ExpectedArrivalTime"),
        ("aimed_arrival", "AimedArrivalTime"),
        ("expected_departure", "ExpectedDepartureTime"),
        ("aimed_departure", "AimedDepartureTime"),
    ):
        if call.get(key) is not None:
            parts.append(f"<{element}>{call[key].isoformat()}</{element}>")
    return f"<{tag}>{''.join(parts)}</{tag}>"


def build_vehicle_activity(
    recorded_at: datetime | None,
    vehicle_ref: str = "V1",
    line_name: str = "66",
    destination: str = "Town Centre",
    lat: float | None = None,
    lon: float | None = None,
    bearing: float | None = None,
    monitored_call: dict | None = None,
    onward_calls: list[dict] | None = None,
) -> str:
    journey = [
        f"<LineRef>{line_name}</LineRef>",
        f"<PublishedLineName>{line_name}</PublishedLineName>",
        f"<DestinationName>{destination}</DestinationName>",
    ]
    if lat is not None and lon is not None:
        journey.append(
            f"<VehicleLocation><Longitude>{lon}</Longitude><Latitude>{lat}</Latitude>"
            "</VehicleLocation>"
        )
    if bearing is not None:
        journey.append(f"<Bearing>{bearing}</Bearing>")
    journey.append(f"<VehicleRef>{vehicle_ref}</VehicleRef>")
    if monitored_call is not None:
        journey.append(_call_xml("MonitoredCall", monitored_call))
    if onward_calls:
        journey.append(
            "<OnwardCalls>"
            + "".join(_call_xml("OnwardCall", c) for c in onward_calls)
            + "</OnwardCalls>"
        )

    recorded = f"<RecordedAtTime>{recorded_at.isoformat()}</RecordedAtTime>" if recorded_at else ""
    return (
        f"<VehicleActivity>{recorded}"
        f"<MonitoredVehicleJourney>{''.join(journey)}</MonitoredVehicleJourney>"
        "</VehicleActivity>"
    )


def build_siri_document(activities: list[str]) -> bytes:
    return (
        f'<?xml version="1.0" encoding="UTF-8"?><Siri xmlns="{SIRI_NS}" version="2.0">'
        "<ServiceDelivery><ResponseTimestamp>2026-10-18T08:00:00+00:00</ResponseTimestamp>"
        "<VehicleMonitoringDelivery>"
        f"{''.join(activities)}"
        "</VehicleMonitoringDelivery></ServiceDelivery></Siri>"
    ).encode()


def build_gtfsrt_feed(vehicles: list[dict]) -> bytes:
    """Build a vehicle positions FeedMessage.

    Each dict takes id, lat, lon and optionally bearing, timestamp, route_id, trip_id.
    """
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = 1700000000

    for vehicle in vehicles:
        entity = feed.entity.add()
        entity.id = vehicle["id"]
        vp = entity.vehicle
        vp.position.latitude = vehicle["lat"]
        vp.position.longitude = vehicle["lon"]
        if vehicle.get("bearing") is not None:
            vp.position.bearing = vehicle["bearing"]
        if vehicle.get("timestamp") is not None:
            vp.timestamp = vehicle["timestamp"]
        if vehicle.get("route_id"):
            vp.trip.route_id = vehicle["route_id"]
        if vehicle.get("trip_id"):
            vp.trip.trip_id = vehicle["trip_id"]

    return feed.SerializeToString()


@pytest.fixture
def vehicle_activity() -> Callable[..., str]:
    return build_vehicle_activity


@pytest.fixture
def siri_document() -> Callable[[list[str]], bytes]:
    return build_siri_document


@pytest.fixture
def gtfsrt_feed() -> Callable[[list[dict]], bytes]:
    return build_gtfsrt_feed


@pytest.fixture
def config() -> EstimatorConfig:
    """Config with a BODS key and test URLs."""
    return EstimatorConfig(
        BODS_API_KEY="test_api_key",
        TFL_API_KEY=None,
        bods_base_url="https://bods.example.com/api/v1",
        tfl_base_url="https://tfl.example.com",
        BODS_OPERATOR_REFS=[],
    )


@pytest.fixture
def http_get() -> Iterator[AsyncMock]:
    """Patch httpx.AsyncClient and yield the AsyncMock standing in for ``get``."""
    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock()
        mock_client_class.return_value = mock_client
        yield mock_client.get

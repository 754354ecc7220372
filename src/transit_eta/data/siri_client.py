import logging
import math
import xml.etree.ElementTree as ET
from datetime import UTC, datetime

import httpx

from transit_eta.data.config import EstimatorConfig
from transit_eta.exceptions import (
    ConfigurationError,
    FeedDecodeError,
    UpstreamError,
    classify_http_error,
)
from transit_eta.models.realtime import JourneyCall, SiriVmData, VehicleActivity
from transit_eta.models.responses import BoundingBox

logger = logging.getLogger(__name__)

API_NAME = "BODS SIRI-VM"


def _local_name(tag: str) -> str:
    """Drop the '{namespace}' prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element | None, *path: str) -> ET.Element | None:
    """Walk direct children by local name, ignoring XML namespaces."""
    current = element
    for name in path:
        if current is None:
            return None
        current = next((c for c in current if _local_name(c.tag) == name), None)
    return current


def _children(element: ET.Element | None, name: str) -> list[ET.Element]:
    if element is None:
        return []
    return [c for c in element if _local_name(c.tag) == name]


def _text(element: ET.Element | None, *path: str) -> str | None:
    found = _child(element, *path)
    if found is None or found.text is None:
        return None
    text = found.text.strip()
    return text or None


def _float(element: ET.Element | None, *path: str) -> float | None:
    """Read a finite number; NaN, inf and junk read as missing."""
    value = _text(element, *path)
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_siri_datetime(value: str | None) -> datetime | None:
    """Parse an ISO 8601 SIRI timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class SiriVmClient:
    """Async HTTP client for the BODS SIRI-VM datafeed.

    Usage:
        async with SiriVmClient(config) as client:
            data = await client.fetch_vehicle_activity(bbox)
    """

    def __init__(self, config: EstimatorConfig):
        """Initialize the client.

        Args:
            config: Estimator configuration with API key and URLs.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "SiriVmClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._config.siri_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_vehicle_activity(self, bbox: BoundingBox) -> SiriVmData:
        """Fetch and parse vehicle activity inside a bounding box.

        Returns:
            SiriVmData with parsed vehicle activity records.

        Raises:
            RuntimeError: If client not initialized.
            ConfigurationError: If no BODS API key is configured.
            UpstreamError: On non-success status, timeout or transport failure.
            FeedDecodeError: If the body is not well-formed XML.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")
        if not self._config.bods_api_key:
            raise ConfigurationError("BODS API key not configured")

        params = {"api_key": self._config.bods_api_key, "boundingBox": bbox.to_query()}
        logger.debug(f"[SIRI-VM] Fetching vehicle activity (bbox: {params['boundingBox']})")

        try:
            response = await self._client.get(
                f"{self._config.bods_base_url}/datafeed/", params=params
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(f"{API_NAME} request timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"{API_NAME} request failed: {e}") from e

        if not response.is_success:
            logger.error(f"[SIRI-VM] Error {response.status_code}: {response.text[:200]}")
            raise classify_http_error(API_NAME, response.status_code)

        return self.parse(response.content)

    def parse(self, payload: bytes | str) -> SiriVmData:
        """Decode a SIRI-VM document into typed records."""
        try:
            root = ET.fromstring(payload)
        except ET.ParseError as e:
            raise FeedDecodeError(f"Malformed SIRI-VM XML: {e}") from e

        activities = [
            self._parse_vehicle_activity(element)
            for element in root.iter()
            if _local_name(element.tag) == "VehicleActivity"
        ]

        return SiriVmData(
            activities=activities,
            fetched_at=datetime.now(UTC),
        )

    def _parse_vehicle_activity(self, element: ET.Element) -> VehicleActivity:
        """Parse a single VehicleActivity block."""
        journey = _child(element, "MonitoredVehicleJourney")

        monitored_call = None
        monitored_element = _child(journey, "MonitoredCall")
        if monitored_element is not None:
            monitored_call = self._parse_call(monitored_element)

        onward_calls: list[JourneyCall] = []
        for call_element in _children(_child(journey, "OnwardCalls"), "OnwardCall"):
            call = self._parse_call(call_element)
            if call is not None:
                onward_calls.append(call)

        return VehicleActivity(
            recorded_at=parse_siri_datetime(_text(element, "RecordedAtTime")),
            line_ref=_text(journey, "LineRef"),
            published_line_name=_text(journey, "PublishedLineName"),
            destination_name=_text(journey, "DestinationName"),
            vehicle_ref=_text(journey, "VehicleRef"),
            latitude=_float(journey, "VehicleLocation", "Latitude"),
            longitude=_float(journey, "VehicleLocation", "Longitude"),
            monitored_call=monitored_call,
            onward_calls=onward_calls,
        )

    def _parse_call(self, element: ET.Element) -> JourneyCall | None:
        """Parse a MonitoredCall or OnwardCall; calls without a stop ref are dropped."""
        stop_point_ref = _text(element, "StopPointRef")
        if stop_point_ref is None:
            return None

        return JourneyCall(
            stop_point_ref=stop_point_ref,
            stop_point_name=_text(element, "StopPointName"),
            expected_arrival_time=parse_siri_datetime(_text(element, "ExpectedArrivalTime")),
            aimed_arrival_time=parse_siri_datetime(_text(element, "AimedArrivalTime")),
            expected_departure_time=parse_siri_datetime(_text(element, "ExpectedDepartureTime")),
            aimed_departure_time=parse_siri_datetime(_text(element, "AimedDepartureTime")),
        )

import logging
from datetime import UTC, datetime

import httpx
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from transit_eta.data.config import EstimatorConfig
from transit_eta.exceptions import (
    ConfigurationError,
    FeedDecodeError,
    UpstreamError,
    classify_http_error,
)
from transit_eta.models.realtime import VehicleReport, VehicleReportsData
from transit_eta.models.responses import BoundingBox

logger = logging.getLogger(__name__)

API_NAME = "BODS GTFS-RT"


class GTFSRTClient:
    """Async HTTP client for the BODS GTFS-RT vehicle positions feed.

    Usage:
        async with GTFSRTClient(config) as client:
            data = await client.fetch_vehicle_positions(bbox)
    """

    def __init__(self, config: EstimatorConfig):
        """Initialize the client.

        Args:
            config: Estimator configuration with API key and URLs.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GTFSRTClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._config.gtfsrt_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_vehicle_positions(self, bbox: BoundingBox) -> VehicleReportsData:
        """Fetch vehicle positions inside a bounding box.

        Returns:
            VehicleReportsData; empty when the upstream sent no usable feed.

        Raises:
            RuntimeError: If client not initialized.
            ConfigurationError: If no BODS API key is configured.
            UpstreamError: On non-success status, timeout or transport failure.
        """
        content = await self._get({"boundingBox": bbox.to_query()})
        return self._decode_or_empty(content)

    async def fetch_vehicle_positions_for_operators(
        self, operator_refs: list[str], min_vehicles: int
    ) -> VehicleReportsData:
        """Fetch vehicle positions one operator at a time and merge them.

        Stops querying further operators once ``min_vehicles`` have been
        collected. A failing operator is logged and skipped.

        Raises:
            RuntimeError: If client not initialized.
            ConfigurationError: If no BODS API key is configured.
        """
        vehicles: list[VehicleReport] = []
        seen_ids: set[str] = set()

        for operator_ref in operator_refs:
            try:
                content = await self._get({"operatorRef": operator_ref})
            except UpstreamError as e:
                logger.warning(f"[GTFS-RT] Operator {operator_ref} failed: {e}")
                continue

            for vehicle in self._decode_or_empty(content).vehicles:
                if vehicle.vehicle_id not in seen_ids:
                    seen_ids.add(vehicle.vehicle_id)
                    vehicles.append(vehicle)

            if len(vehicles) >= min_vehicles:
                logger.debug(f"[GTFS-RT] Collected {len(vehicles)} vehicles, stopping early")
                break

        return VehicleReportsData(vehicles=vehicles, fetched_at=datetime.now(UTC))

    async def _get(self, params: dict[str, str]) -> bytes:
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")
        if not self._config.bods_api_key:
            raise ConfigurationError("BODS API key not configured")

        try:
            response = await self._client.get(
                f"{self._config.bods_base_url}/gtfsrtdatafeed/",
                params={"api_key": self._config.bods_api_key, **params},
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(f"{API_NAME} request timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"{API_NAME} request failed: {e}") from e

        if not response.is_success:
            logger.error(f"[GTFS-RT] Error {response.status_code}: {response.text[:200]}")
            raise classify_http_error(API_NAME, response.status_code)

        return response.content

    def _decode_or_empty(self, content: bytes) -> VehicleReportsData:
        """Decode a feed, treating HTML error pages and garbage as no data."""
        try:
            return self.decode(content)
        except FeedDecodeError as e:
            logger.warning(f"[GTFS-RT] {e}")
            return VehicleReportsData(vehicles=[], fetched_at=datetime.now(UTC))

    def decode(self, content: bytes) -> VehicleReportsData:
        """Parse a GTFS-RT FeedMessage into VehicleReportsData.

        Raises:
            FeedDecodeError: If the payload is HTML or not a valid FeedMessage.
        """
        if not content:
            return VehicleReportsData(vehicles=[], fetched_at=datetime.now(UTC))

        # '<' - a gateway answered with an HTML error page instead of protobuf
        if content[:1] == b"<":
            raise FeedDecodeError("Received HTML instead of protobuf - API may be unavailable")

        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(content)
        except DecodeError as e:
            raise FeedDecodeError(f"Could not decode GTFS-RT feed: {e}") from e

        vehicles: list[VehicleReport] = []
        for entity in feed.entity:
            if entity.HasField("vehicle") and entity.vehicle.HasField("position"):
                vehicles.append(self._parse_vehicle_position(entity))

        logger.debug(f"[GTFS-RT] Decoded {len(vehicles)} positioned vehicles")
        return VehicleReportsData(vehicles=vehicles, fetched_at=datetime.now(UTC))

    def _parse_vehicle_position(self, entity: gtfs_realtime_pb2.FeedEntity) -> VehicleReport:
        """Parse a single vehicle position entity."""
        vp = entity.vehicle

        trip_id = None
        route_id = None
        if vp.HasField("trip"):
            trip_id = vp.trip.trip_id if vp.trip.trip_id else None
            route_id = vp.trip.route_id if vp.trip.route_id else None

        vehicle_id = entity.id or (vp.vehicle.id if vp.HasField("vehicle") else "") or "unknown"

        return VehicleReport(
            vehicle_id=vehicle_id,
            latitude=vp.position.latitude,
            longitude=vp.position.longitude,
            # 0 is a valid bearing (due north)
            bearing=vp.position.bearing if vp.position.HasField("bearing") else None,
            timestamp=vp.timestamp if vp.timestamp else None,
            route_id=route_id,
            trip_id=trip_id,
        )

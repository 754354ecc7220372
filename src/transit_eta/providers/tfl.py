import logging

from transit_eta.data.config import EstimatorConfig
from transit_eta.data.tfl_client import TflClient
from transit_eta.exceptions import UpstreamError
from transit_eta.models.responses import Arrival, ArrivalsResult, Stop
from transit_eta.models.tfl import TflArrival
from transit_eta.providers.base import limit_results

logger = logging.getLogger(__name__)


def transform_arrival(tfl_arrival: TflArrival) -> Arrival:
    """Map a TfL prediction onto the common Arrival shape."""
    destination = tfl_arrival.destination_name or "Unknown destination"
    return Arrival(
        id=tfl_arrival.id,
        line_name=tfl_arrival.line_name,
        destination=destination,
        time_to_station=max(tfl_arrival.time_to_station, 0),
        expected_arrival=tfl_arrival.expected_arrival,
        vehicle_id=tfl_arrival.vehicle_id,
        current_location=tfl_arrival.current_location or "",
        towards=tfl_arrival.towards or destination,
        mode=tfl_arrival.mode_name,
    )


class TflProvider:
    """Direct arrival predictions from the TfL Unified API (London stops)."""

    provider_id = "tfl"
    provider_name = "Transport for London"

    def __init__(self, config: EstimatorConfig):
        self._config = config

    async def get_arrivals(
        self,
        stop: Stop,
        max_results: int | None = None,
        line_ids: list[str] | None = None,
    ) -> ArrivalsResult:
        """Get predictions for a stop, sorted by time to station.

        Upstream failures are returned as a failure result with the status code.
        """
        try:
            async with TflClient(self._config) as client:
                predictions = await client.fetch_arrivals(stop.stop_id, line_ids)
        except UpstreamError as e:
            logger.warning(f"[TfL] Arrivals failed for {stop.stop_id}: {e.message}")
            return ArrivalsResult.failure(e.message, status_code=e.status_code)

        arrivals = sorted(
            (transform_arrival(p) for p in predictions), key=lambda a: a.time_to_station
        )
        return limit_results(ArrivalsResult.ok(arrivals), max_results)

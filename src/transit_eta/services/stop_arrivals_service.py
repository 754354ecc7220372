"""Stop-level arrivals lookup: route the stop, ask its provider, format for display."""

import logging

from transit_eta.data.config import get_estimator_config
from transit_eta.estimation.ranking import format_time_to_station
from transit_eta.models.responses import ArrivalsResponse, ArrivalWithFormatted, Stop
from transit_eta.providers.router import ProviderRouter, build_router

logger = logging.getLogger(__name__)


async def get_arrivals(
    stop_id: str,
    lat: float | None = None,
    lon: float | None = None,
    stop_code: str | None = None,
    city: str | None = None,
    max_results: int = 10,
    line_ids: list[str] | None = None,
    router: ProviderRouter | None = None,
) -> ArrivalsResponse:
    """Get arrivals at a stop from whichever provider covers it.

    Args:
        stop_id: NaPTAN / ATCO stop id.
        lat: Stop latitude (required for estimated arrivals).
        lon: Stop longitude (required for estimated arrivals).
        stop_code: Optional short public code, used as an extra match alias.
        city: Optional city id ("london", "outside-london") overriding prefix routing.
        max_results: Maximum number of arrivals to return.
        line_ids: Optional line ids (e.g. ["66", "2"]) to restrict arrivals to.
        router: Optional router override (default: built from configuration).

    Returns:
        ArrivalsResponse with display-formatted arrivals.
    """
    if router is None:
        router = build_router(get_estimator_config())

    stop = Stop(stop_id=stop_id, stop_code=stop_code, lat=lat or 0.0, lon=lon or 0.0)
    provider = router.route(stop_id, city)
    logger.info(f"[Arrivals] {stop_id} via {provider.provider_name}")

    result = await provider.get_arrivals(stop, max_results=max_results, line_ids=line_ids)

    arrivals = [
        ArrivalWithFormatted(
            **arrival.model_dump(),
            time_formatted=format_time_to_station(arrival.time_to_station),
        )
        for arrival in result.data
    ]

    return ArrivalsResponse(
        stop_id=stop_id,
        provider=provider.provider_id,
        arrivals=arrivals,
        count=len(arrivals),
        success=result.success,
        error=result.error,
        status_code=result.status_code,
    )

from transit_eta.app import mcp
from transit_eta.models.responses import ArrivalsResponse
from transit_eta.services.stop_arrivals_service import get_arrivals as _get_arrivals

MAX_ARRIVALS = 10


def clamp_max_results(max_results: int) -> int:
    """Clamp a requested result count to 1-MAX_ARRIVALS."""
    return max(1, min(MAX_ARRIVALS, max_results))


@mcp.tool()
async def get_arrivals(
    stop_id: str,
    lat: float | None = None,
    lon: float | None = None,
    stop_code: str | None = None,
    city: str | None = None,
    max_results: int = 10,
    line_ids: list[str] | None = None,
) -> ArrivalsResponse:
    """Get upcoming bus arrivals at a UK stop.

    London stops (NaPTAN ids starting with "490") get TfL predictions.
    Other stops get arrivals estimated from live BODS vehicle feeds, which
    need the stop's coordinates. No arrivals is a normal answer.

    Args:
        stop_id: NaPTAN / ATCO stop id (e.g., "490008660N", "0100BRP90312").
        lat: Stop latitude (needed outside London).
        lon: Stop longitude (needed outside London).
        stop_code: Optional short public stop code, improves feed matching.
        city: Optional city id ("london" or "outside-london") to force a provider.
        max_results: Maximum number of arrivals to return (1-10, default: 10).
        line_ids: Optional line ids to restrict arrivals to (e.g., ["25", "86"]).

    Returns:
        ArrivalsResponse with arrivals sorted by time to station.
    """
    return await _get_arrivals(
        stop_id=stop_id,
        lat=lat,
        lon=lon,
        stop_code=stop_code,
        city=city,
        max_results=clamp_max_results(max_results),
        line_ids=line_ids or None,
    )

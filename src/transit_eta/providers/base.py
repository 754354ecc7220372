from typing import Protocol

from transit_eta.models.responses import ArrivalsResult, Stop


class TransitProvider(Protocol):
    """Anything that can answer "what is arriving at this stop?"."""

    provider_id: str
    provider_name: str

    async def get_arrivals(
        self,
        stop: Stop,
        max_results: int | None = None,
        line_ids: list[str] | None = None,
    ) -> ArrivalsResult:
        ...


def limit_results(result: ArrivalsResult, max_results: int | None) -> ArrivalsResult:
    """Apply a caller's max_results to a successful result."""
    if not result.success or not max_results:
        return result
    return result.model_copy(update={"data": result.data[:max_results]})

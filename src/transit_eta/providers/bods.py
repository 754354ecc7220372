import logging
from functools import lru_cache

from transit_eta.data.config import EstimatorConfig
from transit_eta.matching.stop_ids import stop_alias_ids
from transit_eta.models.responses import ArrivalsResult, Stop
from transit_eta.providers.base import limit_results
from transit_eta.services.arrivals_service import ArrivalEstimationPipeline

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _warn_missing_api_key() -> None:
    """Log the missing-key warning once per process."""
    logger.warning(
        "BODS_API_KEY not set. Estimated arrivals outside London will be empty. "
        "Get a key at https://data.bus-data.dft.gov.uk/account/signup/"
    )


class BodsProvider:
    """Estimated arrivals from UK Bus Open Data Service vehicle feeds."""

    provider_id = "bods"
    provider_name = "UK Bus Open Data Service"

    def __init__(
        self,
        config: EstimatorConfig,
        pipeline: ArrivalEstimationPipeline | None = None,
    ):
        self._config = config
        self._pipeline = pipeline or ArrivalEstimationPipeline.from_config(config)

    async def get_arrivals(
        self,
        stop: Stop,
        max_results: int | None = None,
        line_ids: list[str] | None = None,
    ) -> ArrivalsResult:
        """Estimate arrivals; never returns a failure result."""
        if not self._config.bods_api_key:
            _warn_missing_api_key()
            return ArrivalsResult.ok()

        aliases = stop_alias_ids(stop.stop_id, stop)
        result = await self._pipeline.estimate_arrivals(stop, aliases)

        if line_ids:
            wanted = {line_id.upper() for line_id in line_ids}
            result = ArrivalsResult.ok([a for a in result.data if a.line_name.upper() in wanted])

        return limit_results(result, max_results)

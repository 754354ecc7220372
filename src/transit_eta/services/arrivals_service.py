"""Arrival estimation pipeline for stops without direct predictions.

Implements "primary, then fallback" with "graceful degradation":
- SIRI-VM call predictions are tried first
- GTFS-RT position estimates are used only when SIRI-VM yields nothing
- Any failure degrades to an empty, successful result
"""

import logging

from transit_eta.data.config import EstimatorConfig
from transit_eta.models.responses import ArrivalsResult, Stop
from transit_eta.services.gtfsrt_estimator import GTFSRTEstimator
from transit_eta.services.siri_estimator import SiriVmEstimator

logger = logging.getLogger(__name__)


class ArrivalEstimationPipeline:
    """Runs the structured estimator, then the binary one if needed.

    The two tiers run sequentially so the GTFS-RT feed is only fetched when
    SIRI-VM produced nothing.
    """

    def __init__(self, structured: SiriVmEstimator, binary: GTFSRTEstimator):
        self._structured = structured
        self._binary = binary

    @classmethod
    def from_config(cls, config: EstimatorConfig) -> "ArrivalEstimationPipeline":
        return cls(SiriVmEstimator(config), GTFSRTEstimator(config))

    async def estimate_arrivals(self, stop: Stop, alias_ids: list[str]) -> ArrivalsResult:
        """Estimate arrivals at a stop.

        Args:
            stop: Target stop; must carry coordinates.
            alias_ids: Identifiers the stop may appear under in the feeds.

        Returns:
            Always a successful ArrivalsResult, possibly with no arrivals.
        """
        if not stop.has_location:
            logger.warning(f"[Pipeline] Stop {stop.stop_id} has no valid coordinates")
            return ArrivalsResult.ok()

        try:
            primary = await self._structured.estimate(alias_ids, stop)
        except Exception as e:
            logger.exception(f"[Pipeline] SIRI-VM tier crashed for stop {stop.stop_id}")
            primary = ArrivalsResult.failure(f"SIRI-VM estimation error: {e}")

        if primary.success and primary.data:
            logger.info(f"[Pipeline] Got {len(primary.data)} arrivals from SIRI-VM")
            return primary

        if not primary.success:
            logger.warning(f"[Pipeline] SIRI-VM failed: {primary.error}, falling back to GTFS-RT")
        else:
            logger.info("[Pipeline] SIRI-VM returned no arrivals, trying GTFS-RT fallback")

        try:
            fallback = await self._binary.estimate(stop)
        except Exception:
            logger.exception(f"[Pipeline] GTFS-RT tier crashed for stop {stop.stop_id}")
            return ArrivalsResult.ok()

        if fallback.success:
            return fallback
        return ArrivalsResult.ok()

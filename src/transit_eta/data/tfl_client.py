import logging

import httpx

from transit_eta.data.config import EstimatorConfig
from transit_eta.exceptions import UpstreamError, classify_http_error
from transit_eta.models.tfl import TflArrival

logger = logging.getLogger(__name__)

API_NAME = "TfL API"


class TflClient:
    """Async HTTP client for TfL Unified API arrival predictions.

    Anonymous access works without an API key but is rate limited.

    Usage:
        async with TflClient(config) as client:
            arrivals = await client.fetch_arrivals("490008660N")
    """

    def __init__(self, config: EstimatorConfig):
        """Initialize the client.

        Args:
            config: Configuration with the optional TfL API key and base URL.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "TflClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(
            timeout=self._config.tfl_timeout_seconds,
            headers={"Accept": "application/json"},
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_arrivals(
        self, stop_id: str, line_ids: list[str] | None = None
    ) -> list[TflArrival]:
        """Fetch arrival predictions for a stop.

        Args:
            stop_id: NaPTAN id of the stop.
            line_ids: Optional line ids to restrict predictions to.

        Returns:
            Parsed predictions in upstream order.

        Raises:
            RuntimeError: If client not initialized.
            UpstreamError: On non-success status, timeout or transport failure.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        params: dict[str, str] = {}
        if self._config.tfl_api_key:
            params["app_key"] = self._config.tfl_api_key

        endpoint = f"/StopPoint/{stop_id}/Arrivals"
        if line_ids:
            endpoint = f"/Line/{','.join(line_ids)}/Arrivals/{stop_id}"

        logger.debug(f"[TfL API] Fetching: {endpoint}")

        try:
            response = await self._client.get(
                f"{self._config.tfl_base_url}{endpoint}", params=params
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(f"{API_NAME} request timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Unable to connect to {API_NAME}: {e}") from e

        if not response.is_success:
            logger.error(f"[TfL API] Error {response.status_code}: {response.text[:200]}")
            raise classify_http_error(API_NAME, response.status_code)

        return [TflArrival.model_validate(item) for item in response.json()]

from collections.abc import Mapping

from transit_eta.data.config import EstimatorConfig
from transit_eta.providers.base import TransitProvider
from transit_eta.providers.bods import BodsProvider
from transit_eta.providers.tfl import TflProvider

DIRECT_PROVIDER_ID = "tfl"
ESTIMATING_PROVIDER_ID = "bods"

# City ids pinned to a provider regardless of stop id
CITY_PROVIDERS: dict[str, str] = {
    "london": DIRECT_PROVIDER_ID,
    "outside-london": ESTIMATING_PROVIDER_ID,
}


class ProviderRouter:
    """Pick the provider for a stop. Pure lookup, no I/O.

    An explicit, known city id wins. Otherwise stops whose id starts with a
    direct-prediction prefix go to the direct provider and everything else
    to the estimating one.
    """

    def __init__(
        self,
        providers: Mapping[str, TransitProvider],
        direct_prefixes: list[str],
        city_providers: Mapping[str, str] = CITY_PROVIDERS,
    ):
        self._providers = dict(providers)
        self._direct_prefixes = tuple(p.upper() for p in direct_prefixes)
        self._city_providers = dict(city_providers)

    def provider_id_for(self, stop_id: str, city_id: str | None = None) -> str:
        if city_id and city_id in self._city_providers:
            return self._city_providers[city_id]
        if self._direct_prefixes and stop_id.strip().upper().startswith(self._direct_prefixes):
            return DIRECT_PROVIDER_ID
        return ESTIMATING_PROVIDER_ID

    def route(self, stop_id: str, city_id: str | None = None) -> TransitProvider:
        """Return the provider that should serve arrivals for a stop.

        Raises:
            KeyError: If the selected provider id was not registered.
        """
        return self._providers[self.provider_id_for(stop_id, city_id)]

    @property
    def providers(self) -> dict[str, TransitProvider]:
        return dict(self._providers)


def build_router(config: EstimatorConfig) -> ProviderRouter:
    """Construct the providers from configuration and wire them into a router."""
    providers: dict[str, TransitProvider] = {
        DIRECT_PROVIDER_ID: TflProvider(config),
        ESTIMATING_PROVIDER_ID: BodsProvider(config),
    }
    return ProviderRouter(providers, config.direct_stop_prefixes)

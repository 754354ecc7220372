from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class EstimatorConfig(BaseSettings):
    """Configuration for the BODS feeds and the TfL prediction API.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    bods_api_key: str | None = Field(default=None, alias="BODS_API_KEY")
    tfl_api_key: str | None = Field(default=None, alias="TFL_API_KEY")

    bods_base_url: str = "https://data.bus-data.dft.gov.uk/api/v1"
    tfl_base_url: str = "https://api.tfl.gov.uk"

    # per-fetch timeouts (seconds)
    siri_timeout_seconds: float = 15.0
    gtfsrt_timeout_seconds: float = 20.0
    tfl_timeout_seconds: float = 10.0

    search_radius_km: float = Field(default=10.0, alias="BODS_SEARCH_RADIUS_KM")

    # Operator-scoped GTFS-RT queries; empty means query by bounding box
    gtfsrt_operator_refs: Annotated[list[str], NoDecode] = Field(
        default_factory=list, alias="BODS_OPERATOR_REFS"
    )
    gtfsrt_min_vehicles: int = 50

    # Stop id prefixes served by the direct prediction API (London NaPTAN)
    direct_stop_prefixes: list[str] = Field(default_factory=lambda: ["490"])

    @field_validator("bods_api_key", "tfl_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: str | None) -> str | None:
        if value is None or not str(value).strip():
            return None
        return str(value).strip()

    @field_validator("gtfsrt_operator_refs", mode="before")
    @classmethod
    def _split_operator_refs(cls, value: object) -> object:
        # Accept "FBRI,SCCM" from the environment as well as a list
        if isinstance(value, str):
            return [ref.strip() for ref in value.split(",") if ref.strip()]
        return value


@lru_cache
def get_estimator_config() -> EstimatorConfig:
    """Get estimator configuration (cached singleton).

    Returns:
        EstimatorConfig with values from .env file or environment variables.
    """
    return EstimatorConfig()

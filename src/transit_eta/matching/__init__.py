"""Stop identifier reconciliation across upstream id schemes."""

from transit_eta.matching.stop_ids import (
    is_matching_stop_id,
    normalize_stop_id,
    stop_alias_ids,
)

__all__ = [
    "is_matching_stop_id",
    "normalize_stop_id",
    "stop_alias_ids",
]

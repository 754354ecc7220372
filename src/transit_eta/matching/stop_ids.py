import re
from collections.abc import Iterable
from functools import lru_cache

from transit_eta.models.responses import Stop

# Length of the short public code (NaPTAN code) that long ATCO codes end with
SHORT_CODE_LENGTH = 8

# A suffix shorter than this is too generic to search for inside another id
MIN_EMBEDDED_LENGTH = 6

WHITESPACE = re.compile(r"\s+")


@lru_cache(maxsize=4096)
def normalize_stop_id(stop_id: str) -> str:
    """Strip all whitespace and uppercase a stop identifier.

    Example: " 3390 C12 " -> "3390C12"
    """
    return WHITESPACE.sub("", stop_id).upper()


def _matches_one(candidate: str, target: str) -> bool:
    if not candidate or not target:
        return False

    if candidate == target:
        return True

    # one embeds the other, e.g. a prefixed feed reference
    if target in candidate or candidate in target:
        return True

    # long ATCO codes and short public codes share their last 8 characters
    if len(candidate) >= SHORT_CODE_LENGTH and len(target) >= SHORT_CODE_LENGTH:
        if candidate[-SHORT_CODE_LENGTH:] == target[-SHORT_CODE_LENGTH:]:
            return True

    suffix = target[-SHORT_CODE_LENGTH:]
    return len(suffix) >= MIN_EMBEDDED_LENGTH and suffix in candidate


def is_matching_stop_id(candidate_ref: str | None, target_ids: Iterable[str]) -> bool:
    """Check whether a feed stop reference refers to one of the target stop ids.

    Upstream feeds tag stops with the full ATCO code, the short public code,
    or either with a prefix, so every alias is tried with the rules:
    exact, containment, shared 8-character suffix, embedded suffix.

    Args:
        candidate_ref: Stop reference as it appears in the feed.
        target_ids: Known aliases of the target stop.

    Returns:
        True on the first alias that matches.
    """
    if not candidate_ref:
        return False

    candidate = normalize_stop_id(candidate_ref)
    return any(_matches_one(candidate, normalize_stop_id(t)) for t in target_ids if t)


def stop_alias_ids(request_id: str, stop: Stop) -> list[str]:
    """Collect the identifiers a stop may appear under in upstream feeds.

    Order: the id the caller asked for, the short public code, the canonical id.
    Duplicates and empty values are dropped.
    """
    aliases: list[str] = []
    for value in (request_id, stop.stop_code, stop.stop_id):
        if value and value.strip() and value not in aliases:
            aliases.append(value)
    return aliases

"""
City/district normalization utility.

CRITICAL: This is a deterministic function - same input always produces
same output. Used both when storing an issue's lookup key and when
matching a district query or an administrator's scope.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


def normalize_district(district: Optional[str]) -> str:
    """
    Canonical district key for case-insensitive exact matching.

    - Trims surrounding whitespace
    - Collapses internal runs of whitespace to a single space
    - Case-folds ("Chennai", " CHENNAI " and "chennai" share one key)

    Args:
        district: District/city name (may be None or blank)

    Returns:
        Normalized key, or "" for missing values
    """
    if not district or not isinstance(district, str):
        return ""
    return " ".join(district.split()).casefold()


def same_district(left: Optional[str], right: Optional[str]) -> bool:
    """True when both names are present and normalize to the same key."""
    left_key = normalize_district(left)
    return bool(left_key) and left_key == normalize_district(right)

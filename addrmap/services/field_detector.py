from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from addrmap.models.config_models import DEFAULT_ADDRESS_KEYWORDS, DEFAULT_CATEGORY_KEYWORDS
from addrmap.models.resolved_address import RawRow

"""Column detection for uploaded rows.

Only the first row's key set is inspected: the schema is sampled once and is
assumed uniform across rows. Per-row schema validation, if ever needed, is a
separate pass.

Matching policy (address and category alike):
    for each keyword in priority order, the first key (in the row's natural
    order) whose lower-cased name contains the keyword wins.
"""

__all__ = [
    "ADDRESS_KEYWORDS",
    "CATEGORY_KEYWORDS",
    "FieldDetection",
    "detect_address_field",
    "detect_category_field",
    "detect_fields",
]

logger = logging.getLogger(__name__)

ADDRESS_KEYWORDS = DEFAULT_ADDRESS_KEYWORDS
CATEGORY_KEYWORDS = DEFAULT_CATEGORY_KEYWORDS


def _first_row_keys(rows: Sequence[RawRow]) -> list[str]:
    if not rows:
        return []
    return [str(k) for k in rows[0].keys()]


def _match_keyword(keys: Sequence[str], keywords: Sequence[str], exclude: str | None = None) -> str | None:
    for keyword in keywords:
        kw = keyword.lower()
        for key in keys:
            if key == exclude:
                continue
            if kw in key.lower():
                return key
    return None


def detect_address_field(rows: Sequence[RawRow], keywords: Sequence[str] = ADDRESS_KEYWORDS) -> str | None:
    """Pick the column most likely to hold a street address.

    Returns:
        The matching column name; the first column when no keyword matches
        (low-confidence default, logged); None when there are no rows or the
        first row has no keys (NoAddressField).
    """
    keys = _first_row_keys(rows)
    logger.debug("available fields for address detection: %s", keys)
    if not keys:
        return None
    match = _match_keyword(keys, keywords)
    if match is not None:
        logger.info("detected address field: %s", match)
        return match
    logger.warning("no address field detected; defaulting to first field: %s", keys[0])
    return keys[0]


def detect_category_field(
    rows: Sequence[RawRow],
    keywords: Sequence[str] = CATEGORY_KEYWORDS,
    *,
    address_field: str | None = None,
) -> str | None:
    """Pick an optional category column. None disables category filtering."""
    keys = _first_row_keys(rows)
    match = _match_keyword(keys, keywords, exclude=address_field)
    if match is not None:
        logger.info("detected category field: %s", match)
    return match


@dataclass(frozen=True)
class FieldDetection:
    address_field: str | None
    category_field: str | None
    low_confidence: bool = False  # address_field fell back to the first column


def detect_fields(
    rows: Sequence[RawRow],
    address_keywords: Sequence[str] = ADDRESS_KEYWORDS,
    category_keywords: Sequence[str] = CATEGORY_KEYWORDS,
) -> FieldDetection:
    """Run both detectors over the same sampled row."""
    address = detect_address_field(rows, address_keywords)
    keys = _first_row_keys(rows)
    low_confidence = address is not None and _match_keyword(keys, address_keywords) is None
    category = detect_category_field(rows, category_keywords, address_field=address)
    return FieldDetection(address_field=address, category_field=category, low_confidence=low_confidence)

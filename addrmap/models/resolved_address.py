from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

"""ResolvedAddress model: the canonical output unit of a batch.

A ResolvedAddress only exists for rows whose geocoding succeeded. The original
row is kept verbatim so arbitrary extra columns can be shown and exported.
"""

__all__ = [
    "RawRow",
    "ResolvedAddress",
    "make_record_id",
]

# Column name -> scalar value, one per spreadsheet row (file column order)
RawRow = Mapping[str, Any]


def make_record_id(row_index: int, ingested_at_ms: int) -> str:
    """Build a session-stable record id from row index + batch ingestion time."""
    return f"{row_index}-{ingested_at_ms}"


@dataclass(frozen=True)
class ResolvedAddress:
    """One geocoded row.

    address_text is the provider's formatted address, not the raw cell text.
    category is None when no category column was detected.
    """
    id: str
    address_text: str
    latitude: float
    longitude: float
    source_row: dict[str, Any] = field(default_factory=dict)
    category: Any = None

    @property
    def position(self) -> dict[str, float]:
        return {"lat": self.latitude, "lng": self.longitude}

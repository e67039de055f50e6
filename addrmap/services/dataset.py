from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from ..models.processing_result import FilterCriteria
from ..models.resolved_address import ResolvedAddress

"""In-memory Address Dataset and its read-only views.

The dataset is immutable once built: filtering, marker building and centring
all return new lists and never touch the underlying records. A new upload
replaces the dataset wholesale (DatasetStore), there is no merge.
"""

__all__ = [
    "ALL_CATEGORIES",
    "DEFAULT_CENTER",
    "AddressDataset",
    "DatasetStore",
    "matches_search",
    "matches_category",
]

ALL_CATEGORIES = "all"

# 座標が無い場合の既定中心 (New York City)
DEFAULT_CENTER = {"lat": 40.7128, "lng": -74.0060}

# Keys never offered as filter fields
_RESERVED_FIELD_NAMES = {"address", "id", "latitude", "longitude"}


def matches_search(record: ResolvedAddress, search_term: str) -> bool:
    """Case-insensitive substring match on the address or any string cell."""
    if not search_term:
        return True
    needle = search_term.lower()
    if needle in record.address_text.lower():
        return True
    return any(isinstance(v, str) and needle in v.lower() for v in record.source_row.values())


def matches_category(record: ResolvedAddress, category: str) -> bool:
    """Key-presence match: the selected name must be a key of source_row.

    This filters by column presence, not by the column's value.
    """
    if category == ALL_CATEGORIES:
        return True
    return category in record.source_row


class AddressDataset:
    """Ordered, immutable collection of ResolvedAddress (resolution order)."""

    def __init__(self, records: Iterable[ResolvedAddress] = (), category_field: str | None = None) -> None:
        self._records: tuple[ResolvedAddress, ...] = tuple(records)
        self.category_field = category_field

    @property
    def records(self) -> tuple[ResolvedAddress, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ResolvedAddress]:
        return iter(self._records)

    def __getitem__(self, index: int) -> ResolvedAddress:
        return self._records[index]

    def filter(self, criteria: FilterCriteria) -> list[ResolvedAddress]:
        """Pure, order-preserving view; search AND category."""
        if criteria.is_empty:
            return list(self._records)
        return [
            r
            for r in self._records
            if matches_search(r, criteria.search_term) and matches_category(r, criteria.category)
        ]

    def categories(self) -> list[str]:
        """["all", *distinct category values in first-seen order]; [] without a category column."""
        if self.category_field is None:
            return []
        seen: list[str] = []
        for r in self._records:
            if r.category is None:
                continue
            value = str(r.category)
            if value not in seen:
                seen.append(value)
        return [ALL_CATEGORIES, *seen]

    def filter_fields(self) -> list[str]:
        """Keys of the first record's source_row usable as category-filter names."""
        if not self._records:
            return []
        return [k for k in self._records[0].source_row if k.lower() not in _RESERVED_FIELD_NAMES]

    def to_markers(self, records: Iterable[ResolvedAddress] | None = None) -> list[dict[str, Any]]:
        """Payload for the map widget: position, title and row metadata."""
        source = self._records if records is None else records
        return [
            {
                "position": r.position,
                "title": r.address_text,
                "metadata": dict(r.source_row),
            }
            for r in source
        ]

    def map_center(self, records: Iterable[ResolvedAddress] | None = None) -> dict[str, float]:
        """Mean position of the records, or DEFAULT_CENTER when empty."""
        source = list(self._records if records is None else records)
        if not source:
            return dict(DEFAULT_CENTER)
        return {
            "lat": sum(r.latitude for r in source) / len(source),
            "lng": sum(r.longitude for r in source) / len(source),
        }


class DatasetStore:
    """The session's current dataset, replaced wholesale on every upload."""

    def __init__(self) -> None:
        self._current = AddressDataset()

    @property
    def current(self) -> AddressDataset:
        return self._current

    def replace(self, dataset: AddressDataset) -> None:
        self._current = dataset

    def clear(self) -> None:
        self._current = AddressDataset()

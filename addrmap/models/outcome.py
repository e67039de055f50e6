from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""GeocodeOutcome domain model for the address map pipeline.

One outcome is produced per resolution attempt and consumed immediately by the
batch resolver to decide the row's terminal status. Outcomes are never mutated.
"""

__all__ = [
    "OutcomeKind",
    "GeocodeOutcome",
]


class OutcomeKind(Enum):
    """Classification of a single geocoding attempt.

    - RESOLVED: provider returned coordinates
    - NOT_FOUND: ZERO_RESULTS or any other non-fatal provider status
    - RATE_LIMITED: OVER_QUERY_LIMIT (slow down signal, row is not retried)
    - TRANSIENT_ERROR: transport level failure (network, timeout, bad body)
    - NO_ADDRESS_FIELD: row has no address text to send
    """
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    TRANSIENT_ERROR = "transient_error"
    NO_ADDRESS_FIELD = "no_address_field"


@dataclass(frozen=True)
class GeocodeOutcome:
    """Result of one geocoding attempt.

    latitude / longitude are either both set (RESOLVED) or both None.
    """
    kind: OutcomeKind
    latitude: float | None = None
    longitude: float | None = None
    formatted_address: str | None = None
    message: str | None = None  # provider status or transport error text

    def __post_init__(self) -> None:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be both set or both absent")
        if self.kind is OutcomeKind.RESOLVED and self.latitude is None:
            raise ValueError("resolved outcome requires coordinates")

    @property
    def is_resolved(self) -> bool:
        return self.kind is OutcomeKind.RESOLVED

    @classmethod
    def resolved(cls, latitude: float, longitude: float, formatted_address: str) -> GeocodeOutcome:
        return cls(
            kind=OutcomeKind.RESOLVED,
            latitude=latitude,
            longitude=longitude,
            formatted_address=formatted_address,
        )

    @classmethod
    def not_found(cls, message: str = "ZERO_RESULTS") -> GeocodeOutcome:
        return cls(kind=OutcomeKind.NOT_FOUND, message=message)

    @classmethod
    def rate_limited(cls, message: str = "OVER_QUERY_LIMIT") -> GeocodeOutcome:
        return cls(kind=OutcomeKind.RATE_LIMITED, message=message)

    @classmethod
    def transient_error(cls, message: str) -> GeocodeOutcome:
        return cls(kind=OutcomeKind.TRANSIENT_ERROR, message=message)

    @classmethod
    def no_address_field(cls) -> GeocodeOutcome:
        return cls(kind=OutcomeKind.NO_ADDRESS_FIELD, message="empty address")

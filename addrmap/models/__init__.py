"""Domain models for the address map tool.

This package contains the domain model classes shared by the reader, the
geocoding client, the batch resolver and the dataset/filter layer.
"""

from .config_models import AppConfig, BackoffConfig, DetectionConfig, GeocoderConfig, ReportingConfig
from .error_record import ErrorRecord
from .outcome import GeocodeOutcome, OutcomeKind
from .processing_result import BatchResult, FilterCriteria
from .resolved_address import RawRow, ResolvedAddress, make_record_id
from .row_result import RowResult, RowStatus

__all__ = [
    # Configuration models
    "AppConfig",
    "BackoffConfig",
    "DetectionConfig",
    "GeocoderConfig",
    "ReportingConfig",
    # Processing models
    "BatchResult",
    "ErrorRecord",
    "FilterCriteria",
    "GeocodeOutcome",
    "OutcomeKind",
    "RawRow",
    "ResolvedAddress",
    "RowResult",
    "RowStatus",
    "make_record_id",
]

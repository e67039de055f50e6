from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the address map tool.

These are the typed configuration objects built by addrmap.config.loader.
Defaults mirror a config file with every key omitted.
"""

DEFAULT_ENDPOINT = "https://maps.googleapis.com/maps/api/geocode/json"
DEFAULT_API_KEY_ENV = "GOOGLE_MAPS_API_KEY"

DEFAULT_ADDRESS_KEYWORDS = (
    "address",
    "location",
    "street",
    "streetaddress",
    "fulladdress",
    "addressline1",
    "address1",
    "addr",
)
DEFAULT_CATEGORY_KEYWORDS = ("category", "type")


@dataclass(frozen=True)
class BackoffConfig:
    """Adaptive pacing on OVER_QUERY_LIMIT (disabled = fixed interval only)."""
    enabled: bool = False
    multiplier: float = 2.0
    max_seconds: float = 30.0


@dataclass(frozen=True)
class GeocoderConfig:
    """Geocoding provider connection settings.

    api_key is already resolved (env > YAML) by the loader; None when missing.
    """
    endpoint: str = DEFAULT_ENDPOINT
    api_key: str | None = None
    api_key_env: str = DEFAULT_API_KEY_ENV
    pacing_seconds: float = 0.2  # 連続リクエスト間の最小間隔
    timeout_seconds: float = 10.0
    backoff: BackoffConfig = field(default_factory=BackoffConfig)


@dataclass(frozen=True)
class DetectionConfig:
    """Keyword lists for column detection, in priority order."""
    address_keywords: tuple[str, ...] = DEFAULT_ADDRESS_KEYWORDS
    category_keywords: tuple[str, ...] = DEFAULT_CATEGORY_KEYWORDS


@dataclass(frozen=True)
class ReportingConfig:
    max_failure_messages: int = 5
    error_log_dir: str = "logs"


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object."""
    geocoding: GeocoderConfig = field(default_factory=GeocoderConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)

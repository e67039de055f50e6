"""
Lazily-initialised geocoder handle shared by every batch in a session.

One GeocoderService is created by the caller and passed explicitly to whoever
needs a client; there is no module-level instance.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from addrmap.config.loader import ConfigurationError
from addrmap.models.config_models import GeocoderConfig

from .client import GeocodeClient
from .rate_limiter import BackoffRateLimiter, FixedIntervalRateLimiter, RateLimiter

logger = logging.getLogger(__name__)

__all__ = [
    "GeocoderService",
    "MISSING_KEY_WARNING",
    "build_rate_limiter",
]

MISSING_KEY_WARNING = (
    "Google Maps API key is not set; geocoding requests will be sent without a key "
    "and are expected to fail. Set {env} (or put it in .env)."
)

ClientFactory = Callable[[GeocoderConfig], GeocodeClient]


def _default_client_factory(config: GeocoderConfig) -> GeocodeClient:
    return GeocodeClient(
        api_key=config.api_key,
        endpoint=config.endpoint,
        timeout_seconds=config.timeout_seconds,
    )


def build_rate_limiter(config: GeocoderConfig) -> RateLimiter:
    """Fixed-interval gate, or the backoff variant when enabled in config."""
    if config.backoff.enabled:
        return BackoffRateLimiter(
            config.pacing_seconds,
            multiplier=config.backoff.multiplier,
            max_interval_seconds=config.backoff.max_seconds,
        )
    return FixedIntervalRateLimiter(config.pacing_seconds)


class GeocoderService:
    """Holds the single GeocodeClient + RateLimiter pair for a session.

    ``ensure_ready()`` is idempotent. A failed initialisation is not cached, so
    the next call tries again.
    """

    def __init__(
        self,
        config: GeocoderConfig,
        *,
        client_factory: ClientFactory | None = None,
        rate_limiter_factory: Callable[[GeocoderConfig], RateLimiter] | None = None,
    ) -> None:
        self.config = config
        self._client_factory = client_factory or _default_client_factory
        self._rate_limiter_factory = rate_limiter_factory or build_rate_limiter
        self._client: GeocodeClient | None = None
        self._rate_limiter: RateLimiter | None = None
        self.warning: str | None = None

    @property
    def is_ready(self) -> bool:
        return self._client is not None

    def _validate(self) -> None:
        cfg = self.config
        if not cfg.endpoint.startswith(("http://", "https://")):
            raise ConfigurationError(f"invalid geocoding endpoint: {cfg.endpoint!r}")
        if cfg.pacing_seconds < 0:
            raise ConfigurationError("pacing_seconds must be >= 0")
        if cfg.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be > 0")
        if cfg.api_key is not None and (not cfg.api_key.strip() or any(c.isspace() for c in cfg.api_key)):
            raise ConfigurationError("API key contains whitespace")

    def _warn_missing_key_once(self) -> None:
        if self.config.api_key or self.warning is not None:
            return
        self.warning = MISSING_KEY_WARNING.format(env=self.config.api_key_env)
        logger.warning(self.warning)

    def ensure_ready(self) -> tuple[GeocodeClient, RateLimiter]:
        """Return the shared client and rate limiter, building them on first use.

        Raises:
            ConfigurationError: invalid configuration or credential (retryable)
        """
        if self._client is not None and self._rate_limiter is not None:
            return self._client, self._rate_limiter

        self._validate()
        self._warn_missing_key_once()
        try:
            client = self._client_factory(self.config)
            limiter = self._rate_limiter_factory(self.config)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"geocoder initialisation failed: {e}") from e

        self._client, self._rate_limiter = client, limiter
        logger.debug("geocoder initialised endpoint=%s", self.config.endpoint)
        return client, limiter

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._rate_limiter = None

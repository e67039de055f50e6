"""Geocoding provider access: HTTP client, request pacing, shared service handle."""

from .client import GeocodeClient, build_request_url, interpret_response
from .rate_limiter import BackoffRateLimiter, FixedIntervalRateLimiter, NoopRateLimiter, RateLimiter
from .service import GeocoderService, build_rate_limiter

__all__ = [
    "BackoffRateLimiter",
    "FixedIntervalRateLimiter",
    "GeocodeClient",
    "GeocoderService",
    "NoopRateLimiter",
    "RateLimiter",
    "build_rate_limiter",
    "build_request_url",
    "interpret_response",
]

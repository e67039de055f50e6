"""
Google Geocoding API client.

Builds one GET request per address and maps the provider's ``status`` field to
a GeocodeOutcome. Expected provider answers (no match, over quota, denied) are
returned as outcomes; only transport problems become TRANSIENT_ERROR.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlencode

import requests

from addrmap.models.config_models import DEFAULT_ENDPOINT
from addrmap.models.outcome import GeocodeOutcome

logger = logging.getLogger(__name__)

__all__ = [
    "GeocodeClient",
    "build_request_url",
    "interpret_response",
]

STATUS_OK = "OK"
STATUS_ZERO_RESULTS = "ZERO_RESULTS"
STATUS_OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"


def build_request_url(endpoint: str, address: str, api_key: str | None) -> str:
    """Return ``endpoint?address=...[&key=...]`` with percent-encoded values.

    The key parameter is left out entirely when no key is configured.
    """
    params = {"address": address}
    if api_key:
        params["key"] = api_key
    return f"{endpoint}?{urlencode(params, quote_via=quote)}"


def interpret_response(payload: Any, address: str) -> GeocodeOutcome:
    """Map a decoded provider response onto a GeocodeOutcome."""
    if not isinstance(payload, dict):
        return GeocodeOutcome.transient_error("response body is not a JSON object")

    status = payload.get("status")
    if status == STATUS_OK:
        results = payload.get("results") or []
        if not results:
            logger.warning("status OK but no results for address: %s", address)
            return GeocodeOutcome.not_found("Empty results")
        first = results[0]
        try:
            loc = first["geometry"]["location"]
            lat = float(loc["lat"])
            lng = float(loc["lng"])
        except (KeyError, TypeError, ValueError):
            logger.warning("unparsable geocode result for address: %s", address)
            return GeocodeOutcome.not_found("Parse error")
        formatted = first.get("formatted_address") or address
        return GeocodeOutcome.resolved(lat, lng, formatted)

    if status == STATUS_ZERO_RESULTS:
        logger.warning("no results found for address: %s", address)
        return GeocodeOutcome.not_found(STATUS_ZERO_RESULTS)

    if status == STATUS_OVER_QUERY_LIMIT:
        logger.error("geocoding query limit exceeded (address: %s)", address)
        return GeocodeOutcome.rate_limited(STATUS_OVER_QUERY_LIMIT)

    # REQUEST_DENIED / INVALID_REQUEST / UNKNOWN_ERROR ... 非致命扱い
    message = str(status) if status else "missing status"
    error_message = payload.get("error_message")
    if error_message:
        message = f"{message}: {error_message}"
    logger.warning("geocoding failed for address: %s, status: %s", address, message)
    return GeocodeOutcome.not_found(message)


class GeocodeClient:
    """Thin wrapper over one ``requests.Session`` bound to an endpoint + key.

    Pacing is not done here; the resolver drives the rate limiter.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def geocode(self, address: str) -> GeocodeOutcome:
        """Resolve one address. Never raises for provider responses."""
        url = build_request_url(self.endpoint, address, self.api_key)
        logger.debug("geocoding address: %s", address)
        try:
            response = self._session.get(url, timeout=self.timeout_seconds)
        except requests.Timeout as e:
            logger.warning("geocoding request timed out for address: %s", address)
            return GeocodeOutcome.transient_error(f"timeout: {e}")
        except requests.RequestException as e:
            logger.warning("geocoding request failed for address: %s: %s", address, e)
            return GeocodeOutcome.transient_error(str(e))

        if response.status_code == 429:
            # HTTP レベルのクォータ超過も OVER_QUERY_LIMIT と同じ扱い
            logger.error("geocoding rate limited by HTTP 429 (address: %s)", address)
            return GeocodeOutcome.rate_limited("HTTP 429")
        if response.status_code >= 500:
            return GeocodeOutcome.transient_error(f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError:
            return GeocodeOutcome.transient_error(f"invalid JSON body (HTTP {response.status_code})")

        outcome = interpret_response(payload, address)
        if outcome.is_resolved:
            logger.debug(
                "geocoded %s to lat=%s lng=%s", address, outcome.latitude, outcome.longitude
            )
        return outcome

    def close(self) -> None:
        self._session.close()

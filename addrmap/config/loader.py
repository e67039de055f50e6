from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import load_dotenv
from jsonschema.exceptions import ValidationError

from addrmap.models.config_models import (
    DEFAULT_API_KEY_ENV,
    AppConfig,
    BackoffConfig,
    DetectionConfig,
    GeocoderConfig,
    ReportingConfig,
)

"""Config loader.

Responsibilities:
- Load the optional YAML config (config/addrmap.yml by default)
- Validate it against config_schema.json
- Apply defaults for every omitted key
- Resolve the geocoding API key (environment first, YAML last)
"""

__all__ = [
    "ConfigurationError",
    "DEFAULT_CONFIG_PATH",
    "FALLBACK_API_KEY_ENV",
    "load_config",
    "load_env_file",
    "resolve_api_key",
]

DEFAULT_CONFIG_PATH = Path("config/addrmap.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

# Name used by the browser build of the tool; honoured as a second choice
FALLBACK_API_KEY_ENV = "NEXT_PUBLIC_GOOGLE_MAPS_API_KEY"


class ConfigurationError(Exception):
    """Missing/invalid configuration or credential.

    Fatal to the geocoding capability, never to file parsing.
    """


def load_env_file(path: Path = Path(".env"), override: bool = True) -> bool:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数を上書きする。

    Returns:
        True when a .env file was found and loaded
    """
    if not path.exists():
        return False
    return bool(load_dotenv(dotenv_path=path, override=override))


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigurationError: schema file missing/broken or data does not conform
    """
    if not SCHEMA_PATH.exists():
        raise ConfigurationError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"config validation failed: {e.message}") from e


def _clean_key(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def resolve_api_key(yaml_key: Any = None, api_key_env: str = DEFAULT_API_KEY_ENV) -> str | None:
    """Resolve the API key. Blank values count as missing.

    優先順位:
        1. 環境変数 ``api_key_env`` (既定 GOOGLE_MAPS_API_KEY)
        2. NEXT_PUBLIC_GOOGLE_MAPS_API_KEY
        3. YAML geocoding.api_key
    """
    for candidate in (os.getenv(api_key_env), os.getenv(FALLBACK_API_KEY_ENV), yaml_key):
        key = _clean_key(candidate)
        if key is not None:
            return key
    return None


def _build_config(data: dict[str, Any]) -> AppConfig:
    geo_raw = data.get("geocoding") or {}
    backoff_raw = geo_raw.get("backoff") or {}
    det_raw = data.get("detection") or {}
    rep_raw = data.get("reporting") or {}

    defaults = GeocoderConfig()
    api_key_env = geo_raw.get("api_key_env", defaults.api_key_env)
    backoff_defaults = BackoffConfig()
    geocoding = GeocoderConfig(
        endpoint=geo_raw.get("endpoint", defaults.endpoint),
        api_key=resolve_api_key(geo_raw.get("api_key"), api_key_env),
        api_key_env=api_key_env,
        pacing_seconds=float(geo_raw.get("pacing_seconds", defaults.pacing_seconds)),
        timeout_seconds=float(geo_raw.get("timeout_seconds", defaults.timeout_seconds)),
        backoff=BackoffConfig(
            enabled=bool(backoff_raw.get("enabled", backoff_defaults.enabled)),
            multiplier=float(backoff_raw.get("multiplier", backoff_defaults.multiplier)),
            max_seconds=float(backoff_raw.get("max_seconds", backoff_defaults.max_seconds)),
        ),
    )

    det_defaults = DetectionConfig()
    detection = DetectionConfig(
        address_keywords=tuple(det_raw.get("address_keywords", det_defaults.address_keywords)),
        category_keywords=tuple(det_raw.get("category_keywords", det_defaults.category_keywords)),
    )

    rep_defaults = ReportingConfig()
    reporting = ReportingConfig(
        max_failure_messages=int(rep_raw.get("max_failure_messages", rep_defaults.max_failure_messages)),
        error_log_dir=rep_raw.get("error_log_dir", rep_defaults.error_log_dir),
    )
    return AppConfig(geocoding=geocoding, detection=detection, reporting=reporting)


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration.

    Args:
        path: Explicit config file. When None the default path is used if it
            exists, otherwise built-in defaults apply.

    Raises:
        ConfigurationError: explicit file missing, invalid YAML, schema violation
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return _build_config({})
        path = DEFAULT_CONFIG_PATH
    elif not path.exists():
        raise ConfigurationError(f"config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return _build_config(data)

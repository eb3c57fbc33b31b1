from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from services.errors import ConfigError


_PRODUCT_ID_ENV = "PRODUCT_ID"
_API_KEY_ENV = "API_KEY"
_API_URL_ENV = "API_URL"
_SESSION_SECRET_ENV = "SESSION_SECRET"
_ENVIRONMENT_ENV = "APP_ENV"
_CACHE_TTL_ENV = "CACHE_TTL_SECONDS"
_TIMEOUT_ENV = "REQUEST_TIMEOUT_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_SESSION_SECRET = "airqualityegg_session_secret"
PRODUCTION_CACHE_TTL = 3600 * 12
DEVELOPMENT_CACHE_TTL = 300

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    product_id: str
    api_key: str
    api_url: str
    cache_ttl_seconds: int
    environment: str
    session_secret: str
    request_timeout: float
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_required_env(name: str) -> str:
    value = _read_optional_env(name)
    if value is None:
        raise ConfigError(f"{name} not set")
    return value


def _read_positive_number(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _default_cache_ttl(environment: str) -> int:
    if environment == "production":
        return PRODUCTION_CACHE_TTL
    return DEVELOPMENT_CACHE_TTL


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide configuration, failing fast on missing values."""
    product_id = _read_required_env(_PRODUCT_ID_ENV)
    api_key = _read_required_env(_API_KEY_ENV)
    api_url = _read_required_env(_API_URL_ENV)

    environment = _read_str_env(_ENVIRONMENT_ENV, "development").lower()

    session_secret = _read_optional_env(_SESSION_SECRET_ENV)
    if session_secret is None:
        logger.warning("You should set a %s; falling back to the built-in default", _SESSION_SECRET_ENV)
        session_secret = DEFAULT_SESSION_SECRET

    ttl = _read_positive_number(_CACHE_TTL_ENV, _default_cache_ttl(environment))

    return Settings(
        product_id=product_id,
        api_key=api_key,
        api_url=api_url.rstrip("/"),
        cache_ttl_seconds=int(ttl),
        environment=environment,
        session_secret=session_secret,
        request_timeout=_read_positive_number(_TIMEOUT_ENV, 30.0),
        log_level=_read_log_level("INFO"),
    )

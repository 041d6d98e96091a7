"""Client configuration for Moovey.

Values come from the environment (a `.env` file in the working directory is
loaded first). Anything passed explicitly to a client wins over the
environment.
"""

import os
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from moovey.models.constants import (
    DEFAULT_CACHE_TTL_MS,
    CACHE_MAX_ENTRIES,
    CACHE_LOW_WATERMARK,
    DEFAULT_REQUEST_TIMEOUT_SEC,
)

load_dotenv()

DEFAULT_BASE_URL = "http://localhost:8000"


class ClientSettings(BaseModel):
    """Settings shared by the API client, cache and dashboard state."""

    base_url: str = Field(DEFAULT_BASE_URL, description="Root URL of the Moovey web app")
    csrf_token: str = Field("", description="Anti-forgery token sent on every mutating request")
    request_timeout_sec: float = Field(DEFAULT_REQUEST_TIMEOUT_SEC, gt=0, description="Per-request timeout")
    cache_ttl_ms: int = Field(DEFAULT_CACHE_TTL_MS, gt=0, description="Default cache entry lifetime")
    cache_max_entries: int = Field(CACHE_MAX_ENTRIES, gt=0)
    cache_low_watermark: int = Field(CACHE_LOW_WATERMARK, gt=0)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e


def load_settings(base_url: Optional[str] = None, csrf_token: Optional[str] = None) -> ClientSettings:
    """Build settings from the environment.

    Env vars: MOOVEY_BASE_URL, MOOVEY_CSRF_TOKEN, MOOVEY_REQUEST_TIMEOUT_SEC,
    MOOVEY_CACHE_TTL_MS, MOOVEY_CACHE_MAX_ENTRIES, MOOVEY_CACHE_LOW_WATERMARK.
    """
    return ClientSettings(
        base_url=base_url or os.getenv("MOOVEY_BASE_URL", DEFAULT_BASE_URL),
        csrf_token=csrf_token if csrf_token is not None else os.getenv("MOOVEY_CSRF_TOKEN", ""),
        request_timeout_sec=_env_int("MOOVEY_REQUEST_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC),
        cache_ttl_ms=_env_int("MOOVEY_CACHE_TTL_MS", DEFAULT_CACHE_TTL_MS),
        cache_max_entries=_env_int("MOOVEY_CACHE_MAX_ENTRIES", CACHE_MAX_ENTRIES),
        cache_low_watermark=_env_int("MOOVEY_CACHE_LOW_WATERMARK", CACHE_LOW_WATERMARK),
    )

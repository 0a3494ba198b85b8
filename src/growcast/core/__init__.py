"""Core module - configuration, errors and the sensor API client."""

from growcast.core import client
from growcast.core.client import (
    HttpDailySource,
    HttpWindowSource,
    check_connection,
    get_json,
)
from growcast.core.config import Settings, configure_logging, settings
from growcast.core.errors import (
    DegenerateInputError,
    GrowcastError,
    InsufficientDataError,
    UpstreamAPIError,
    UpstreamFormatError,
)

__all__ = [
    "client",
    "settings",
    "Settings",
    "configure_logging",
    "get_json",
    "check_connection",
    "HttpWindowSource",
    "HttpDailySource",
    # Errors
    "GrowcastError",
    "InsufficientDataError",
    "DegenerateInputError",
    "UpstreamFormatError",
    "UpstreamAPIError",
]

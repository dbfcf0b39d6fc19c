# soakgen/config/__init__.py
from .models import (
    SoakTestConfig,
    LoadMode,
    AuthMode,
    load_config,
    DEFAULT_PUBSUB_BASE_URL,
    DEFAULT_TOKEN_ENDPOINT,
)
from .durations import parse_duration, format_duration
from .exceptions import ConfigurationError

__all__ = [
    "SoakTestConfig",
    "LoadMode",
    "AuthMode",
    "load_config",
    "parse_duration",
    "format_duration",
    "ConfigurationError",
    "DEFAULT_PUBSUB_BASE_URL",
    "DEFAULT_TOKEN_ENDPOINT",
]

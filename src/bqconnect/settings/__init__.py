"""Settings for bqconnect, loaded from the environment via pydantic-settings."""

from .base import BQBaseSettings
from .connection import ConnectionSettings, ReadClientSettings, get_settings

__all__ = [
    "BQBaseSettings",
    "ConnectionSettings",
    "ReadClientSettings",
    "get_settings",
]

"""Streaming-selection configuration."""

from bqconnect.config.read_client import (
    ReadClientConfiguration,
    ReadClientConfigurationBuilder,
)

__all__ = [
    "ReadClientConfiguration",
    "ReadClientConfigurationBuilder",
]

"""Environment-driven defaults for connections and cursors.

Environment Variable Naming:
    - Format: BQCONNECT_SETTING_NAME
    - Nested: BQCONNECT_READ_CLIENT__BUFFER_SIZE

Example:
    >>> settings = get_settings()
    >>> settings.synchronous_response_timeout
    10.0
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import SettingsConfigDict

from bqconnect.config.read_client import ReadClientConfiguration
from bqconnect.constants import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_MAX_STREAM_PARTITIONS,
    DEFAULT_MINIMUM_TABLE_SIZE,
    DEFAULT_SYNCHRONOUS_RESPONSE_TIMEOUT_SECONDS,
    DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO,
)
from bqconnect.settings.base import BQBaseSettings


class ReadClientSettings(BaseModel):
    """Raw streaming thresholds; validated again when built into a configuration."""

    total_to_first_page_size_ratio: int = Field(default=DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO)
    minimum_table_size: int = Field(default=DEFAULT_MINIMUM_TABLE_SIZE)
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE)

    def to_configuration(self) -> ReadClientConfiguration:
        return (
            ReadClientConfiguration.new_builder()
            .set_total_to_first_page_size_ratio(self.total_to_first_page_size_ratio)
            .set_minimum_table_size(self.minimum_table_size)
            .set_buffer_size(self.buffer_size)
            .build()
        )


class ConnectionSettings(BQBaseSettings):
    model_config = SettingsConfigDict(env_prefix="BQCONNECT_")

    project_id: Optional[str] = Field(
        default=None,
        description="Project that owns submitted jobs and the default dataset",
    )
    default_dataset: Optional[str] = Field(
        default=None,
        description="Dataset used for unqualified table names",
    )

    synchronous_response_timeout: Optional[float] = Field(
        default=DEFAULT_SYNCHRONOUS_RESPONSE_TIMEOUT_SECONDS,
        gt=0,
        description="Seconds to wait for query submission before failing",
    )
    dry_run: bool = Field(default=False)
    use_legacy_sql: bool = Field(default=False)
    use_query_cache: bool = Field(default=True)
    max_results: Optional[int] = Field(default=None, ge=1)
    maximum_bytes_billed: Optional[int] = Field(default=None, ge=1)

    strict_ordering: bool = Field(
        default=False,
        description="Read streaming results from a single partition to keep global row order",
    )
    max_stream_partitions: int = Field(
        default=DEFAULT_MAX_STREAM_PARTITIONS,
        ge=1,
        le=1000,
        description="Upper bound on partitions requested from the streaming service",
    )

    read_client: ReadClientSettings = Field(default_factory=ReadClientSettings)


# Singleton instance
_settings: Optional[ConnectionSettings] = None


def get_settings(force_reload: bool = False) -> ConnectionSettings:
    """Get the process-wide connection settings.

    Args:
        force_reload: Re-read the environment even if settings are cached.
    """
    global _settings

    if _settings is None or force_reload:
        _settings = ConnectionSettings()

    return _settings

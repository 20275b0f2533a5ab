from pydantic_settings import BaseSettings, SettingsConfigDict


class BQBaseSettings(BaseSettings):
    """Shared pydantic-settings configuration for bqconnect.

    Subclasses get ``.env`` support, case-insensitive lookup and the
    ``BQCONNECT_`` environment prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="BQCONNECT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

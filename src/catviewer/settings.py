from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ViewerSettings(BaseSettings):
    """Tunables for photo retrieval, pagination and URL caching."""

    url_ttl_seconds: int = Field(default=3600, ge=60)
    # Cached URLs are dropped this long before they actually expire
    url_refresh_margin_seconds: int = Field(default=300, ge=0)
    url_batch_size: int = Field(default=5, ge=1)
    list_page_size: int = Field(default=1000, ge=1, le=1000)
    pagination_horizon_days: int = Field(default=730, ge=0)
    default_page_size: int = Field(default=30, ge=1)
    max_page_size: int = Field(default=200, ge=1)
    metadata_batch_size: int = Field(default=5, ge=1)
    image_extensions: tuple[str, ...] = ("jpg",)
    metadata_extension: str = "json"
    log_level: str = "INFO"
    log_colors: bool = True

    model_config = SettingsConfigDict(
        env_prefix="VIEWER_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_viewer_settings() -> ViewerSettings:
    """Get cached viewer settings."""
    return ViewerSettings()

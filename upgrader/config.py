from datetime import timedelta
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Upgrader"
    distribution_name: str = "upgrader"
    database_url: str = "sqlite:///./upgrader.db"
    storage_backend: str = "sql"
    update_feed_url: str = ""
    supported_os: list[str] | None = None
    feed_timeout_seconds: float = 4.0
    throttle_duration: timedelta = timedelta(days=3)
    debug_display_always: bool = False
    debug_display_once: bool = False
    min_app_version: str | None = None
    show_ignore: bool = True
    show_later: bool = True
    show_release_notes: bool = True
    country_code: str = "US"
    language_code: str = "en"
    log_level: str = "INFO"
    model_config = SettingsConfigDict(
        env_prefix="UPGRADER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    debug: bool = Field(False, alias="WILAYAH_DEBUG")

    region_api_base_url: str = Field(
        "https://www.emsifa.com/api-wilayah-indonesia/api",
        alias="WILAYAH_REGION_API_BASE_URL",
    )
    region_api_suffix: str = Field(".json", alias="WILAYAH_REGION_API_SUFFIX")
    postal_api_base_url: str = Field(
        "https://kodepos.vercel.app", alias="WILAYAH_POSTAL_API_BASE_URL"
    )

    http_timeout: float = Field(10.0, alias="WILAYAH_HTTP_TIMEOUT")
    http_user_agent: str = Field("wilayah-kodepos", alias="WILAYAH_HTTP_USER_AGENT")

    postal_cache_size: int = Field(512, alias="WILAYAH_POSTAL_CACHE_SIZE")
    postal_cache_ttl: float = Field(60 * 60 * 24, alias="WILAYAH_POSTAL_CACHE_TTL")

    session_cache_size: int = Field(1024, alias="WILAYAH_SESSION_CACHE_SIZE")
    session_ttl: float = Field(60 * 60, alias="WILAYAH_SESSION_TTL")
    region_cache_size: int = Field(64, alias="WILAYAH_REGION_CACHE_SIZE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("region_api_base_url", "postal_api_base_url", mode="before")
    def _strip_trailing_slash(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().rstrip("/")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()  # type: ignore[call-arg]

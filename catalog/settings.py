import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # TMDB Configuration (offline catalog is used when the key is empty)
    tmdb_api_key: str = Field(default="", alias="TMDB_API_KEY")
    tmdb_base_url: str = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL"
    )
    tmdb_image_base_url: str = Field(
        default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_BASE_URL"
    )
    tmdb_language: str = Field(default="en-US", alias="TMDB_LANGUAGE")

    # Retry Configuration (seconds)
    request_timeout: float = Field(default=10.0, gt=0, alias="REQUEST_TIMEOUT")
    max_retries: int = Field(default=3, ge=0, alias="MAX_RETRIES")
    retry_initial_delay: float = Field(default=0.3, ge=0, alias="RETRY_INITIAL_DELAY")
    retry_max_delay: float = Field(default=10.0, ge=0, alias="RETRY_MAX_DELAY")

    # Circuit Breaker Configuration
    circuit_breaker_threshold: int = Field(
        default=5, ge=1, alias="CIRCUIT_BREAKER_THRESHOLD"
    )
    circuit_breaker_cooldown: float = Field(
        default=60.0, ge=0, alias="CIRCUIT_BREAKER_COOLDOWN"
    )

    # Cache Configuration
    cache_policy: str = Field(default="lru", pattern="^(lru|fifo)$", alias="CACHE_POLICY")
    cache_max_entries: int = Field(default=50, ge=1, alias="CACHE_MAX_ENTRIES")
    cache_max_bytes: int = Field(default=50 * 1024 * 1024, ge=1, alias="CACHE_MAX_BYTES")
    cache_ttl: float = Field(default=1800.0, gt=0, alias="CACHE_TTL")

    # Trending Configuration (seconds)
    trending_max_age: float = Field(default=300.0, gt=0, alias="TRENDING_MAX_AGE")
    trending_refresh_interval: float = Field(
        default=10.0, gt=0, alias="TRENDING_REFRESH_INTERVAL"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG")


global_settings = Settings.model_validate(dict(os.environ))

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "FitLens"
    debug: bool = False

    database_url: str = "sqlite:///./fitlens.db"

    redis_url: str = "redis://localhost:6379/0"

    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    serper_api_key: Optional[str] = None
    serper_api_url: str = "https://google.serper.dev/search"
    serper_gl: str = "uk"
    serper_hl: str = "en"
    search_timeout: float = 15.0
    search_max_results: int = 15

    review_cache_ttl_days: int = 7
    refresh_query_delay: float = 1.0  # seconds between queries for one product
    refresh_product_delay: float = 2.0  # seconds between products in a sweep
    refresh_results_per_query: int = 10

    duplicate_similarity_threshold: float = 0.85

    cron_secret: Optional[str] = None

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False


settings = Settings()

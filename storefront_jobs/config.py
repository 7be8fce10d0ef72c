"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Supplier API
    SUPPLIER_BASE_URL: str = "https://api.dropi.co/api"
    SUPPLIER_API_TOKEN: str = ""
    SUPPLIER_PROXY_URL: str = ""
    SUPPLIER_PROXY_KEY: str = ""
    SUPPLIER_TIMEOUT: float = 60.0
    SUPPLIER_PAGE_SIZE: int = 40  # Fixed by the supplier listing endpoint
    SUPPLIER_CATEGORY_ID: int = 1
    SUPPLIER_IMAGE_BASE_URL: str = "https://d39ru7awumhhs2.cloudfront.net/"

    # Worker
    WORKER_POLL_INTERVAL: int = 5
    WORKER_DB_ERROR_BACKOFF: int = 30
    WORKER_DB_WAIT_TIMEOUT: int = 60
    RUN_WORKERS_IN_APP: bool = False
    JOB_ERROR_MAX_LENGTH: int = 10000
    LIST_JOBS_DEFAULT_LIMIT: int = 50

    # Stage executors
    BATCH_SIZE: int = 50
    ITEM_MAX_RETRIES: int = 3
    ITEM_RETRY_BASE_DELAY: float = 2.0
    RATE_LIMIT_BATCH: int = 10
    RATE_LIMIT_DELAY: float = 61.0
    ENRICH_LIMIT: int = 1000
    ENRICH_RETRY_AFTER: int = 3600  # Seconds before a failed enrichment is attempted again

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()

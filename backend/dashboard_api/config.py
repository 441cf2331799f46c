# backend/dashboard_api/config.py
from functools import lru_cache
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

LOCAL_ENVS = ("dev", "test")


class Settings(BaseSettings):
    # "dev" locally, "test" under pytest; anything else is treated as deployed
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str | None = None
    TEST_DATABASE_URL: str | None = None
    DB_APP_ROLE: str | None = None
    DB_REQUIRE_SSL: bool = True

    # Fernet key(s) for environment credentials at rest, comma-separated for rotation
    APP_ENCRYPTION_KEY: str | None = None

    # --- HTTP hardening ---
    FORCE_HTTPS: bool = False
    TRUSTED_HOSTS: List[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "testserver", "test"]
    )
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )
    HSTS_MAX_AGE: int = 31536000
    CONTENT_SECURITY_POLICY: str = (
        "default-src 'self'; "
        "img-src 'self' data:; "
        "style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; "
        "connect-src 'self'; "
        "frame-ancestors 'none'"
    )

    # --- Sync queue (rq over Redis); REDIS_URL beats the discrete parts ---
    REDIS_URL: str | None = None
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str | None = None
    REDIS_DB: int = 0
    QUEUE_NAME: str = "bigquery-sync"
    QUEUE_JOB_TIMEOUT: int = 3600
    QUEUE_RESULT_TTL: int = 86400
    QUEUE_FAILURE_TTL: int = 7 * 86400

    UKG_TIMEOUT_SECONDS: float = 30.0

    @model_validator(mode="after")
    def _require_encryption_key(self):
        # Local runs fall back to a derived development key; deployments must supply one.
        if self.ENV not in LOCAL_ENVS and not (self.APP_ENCRYPTION_KEY or "").strip():
            raise ValueError("APP_ENCRYPTION_KEY must be set outside dev/test environments.")
        return self

    def redis_url(self) -> str:
        if self.REDIS_URL:
            return self.REDIS_URL
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]

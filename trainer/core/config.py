"""
Application configuration management with environment-based settings.
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Literal, Optional

from pydantic import Field, RedisDsn, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_CATALOG_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # ============= Application Settings =============
    APP_NAME: str = "Learning Trainer"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Multiple-choice trainer for the UBI and SRC radio certificate catalogs"
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")
    DOCS_URL: Optional[str] = "/docs"

    # ============= Server Settings =============
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080)
    WORKERS: int = Field(default=1)
    RELOAD: bool = Field(default=False)

    # ============= Session Settings =============
    SECRET_KEY: SecretStr = Field(default="change-me-in-production")
    SESSION_COOKIE: str = "trainer_session"
    SESSION_TTL: int = 86400  # 24 hours

    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:8080"]

    # ============= Catalog Settings =============
    CATALOG_DIR: Path = Field(default=DEFAULT_CATALOG_DIR)
    RANDOM_SEED: Optional[int] = None

    # ============= Progress Settings =============
    PROGRESS_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: RedisDsn = Field(default="redis://localhost:6379/0")
    PROGRESS_LOCK_TIMEOUT: float = 5.0
    MEMORY_MAX_SESSIONS: int = 10000

    # ============= Logging Settings =============
    LOG_LEVEL: str = "INFO"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return json.loads(v)
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def check_workers_share_progress(self) -> "Settings":
        # each worker process would keep its own progress and locks
        if self.WORKERS > 1 and self.PROGRESS_BACKEND == "memory":
            raise ValueError("WORKERS > 1 requires PROGRESS_BACKEND=redis")
        return self

    def get_redis_url(self) -> str:
        """Get Redis URL as string."""
        return str(self.REDIS_URL)

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
Application configuration using Pydantic settings
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Application
    PROJECT_NAME: str = "Tube Bender Score API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1
    SENTRY_DSN: Optional[str] = None
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Database
    database_url: str = "sqlite+aiosqlite:///./benderscore.db"
    db_echo: bool = False

    # Connection pool settings (ignored for SQLite)
    db_pool_size: int = 10
    db_max_overflow: int = 0
    db_pool_pre_ping: bool = True

    # Publish retries when two publishes race for the same version number
    publish_max_attempts: int = 3

    # Catalog and overlay sources
    catalog_path: Path = PACKAGE_DIR / "data" / "catalog.json"
    overlay_path: Optional[Path] = None

    # Admin access
    admin_api_key: Optional[str] = None
    # Only honour X-Forwarded-For / X-Real-IP when running behind a trusted proxy
    trust_proxy_headers: bool = False

    # Rate limiting
    rate_limit_enabled: bool = True
    admin_read_rate_limit: str = "60/minute"
    admin_write_rate_limit: str = "10/minute"

    # Logging
    log_level: str = "INFO"
    slow_request_ms: float = 1000.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

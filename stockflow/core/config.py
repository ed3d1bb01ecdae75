"""
StockFlow Configuration
Core settings for the stock replenishment service
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import Dict, List, Optional
from pathlib import Path


class Settings(BaseSettings):
    """Application settings"""

    # Application Info
    APP_NAME: str = "StockFlow Replenishment API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./stockflow.db"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    SQLITE_BUSY_TIMEOUT: int = 30  # seconds a writer waits for the lock

    # Security
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS
    CORS_ORIGINS: list = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path("logs")
    LOG_FILE: str = "app.log"
    ERROR_LOG_FILE: str = "error.log"
    LOG_TO_FILE: bool = True

    # Stock location defaults
    DEFAULT_MIN_STOCK: int = 10
    DEFAULT_MAX_STOCK: int = 100
    TRANSFER_DESTINATION_MIN_STOCK: int = 0

    # Automatic trigger
    AUTO_TRIGGER_ENABLED: bool = True
    AUTO_TRIGGER_INTERVAL_MINUTES: int = 30
    AUTO_TRIGGER_RECHECK_DELAY_SECONDS: float = 2.0

    # API Configuration
    API_V1_STR: str = "/api/v1"

    # Email Settings (for notifications)
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: str = "stockflow@localhost"
    NOTIFY_ROLE_RECIPIENTS: Dict[str, List[str]] = {}

    @field_validator("LOG_DIR", mode="before")
    @classmethod
    def normalise_log_dir(cls, v):
        """Accept plain strings for the log directory"""
        return Path(v) if isinstance(v, str) else v

    @field_validator("DEFAULT_MAX_STOCK")
    @classmethod
    def check_max_stock(cls, v: int) -> int:
        if v < 1:
            raise ValueError("DEFAULT_MAX_STOCK must be at least 1")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()

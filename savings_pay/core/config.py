# savings_pay/core/config.py

from pathlib import Path
from typing import Literal
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the project root directory (where .env should be located)
BASE_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra="ignore"
    )

    # App Configuration
    APP_NAME: str = "Savings Pay API"
    DEBUG: bool = False
    VERSION: str = "0.1.0"

    # Database Configuration
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    CREATE_TABLES_ON_STARTUP: bool = True

    # CORS Configuration
    FRONTEND_URL: str = "http://localhost:5173"

    # Mock bank
    INITIAL_BALANCE: float = 10000.0
    MANUAL_ACCEPT_RATE: float = 0.90
    AUTOMATIC_ACCEPT_RATE: float = 0.95
    SETTLEMENT_TIMEOUT_SECONDS: float = 10.0

    # Where payment references live: "database" survives restarts, "memory" does not
    REFERENCE_VAULT_BACKEND: Literal["database", "memory"] = "database"

    # Optional: Environment
    ENVIRONMENT: str = "development"

    @field_validator("MANUAL_ACCEPT_RATE", "AUTOMATIC_ACCEPT_RATE")
    @classmethod
    def _check_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("accept rate must be between 0 and 1")
        return v

    @property
    def is_supabase(self) -> bool:
        """Check if we're using Supabase database"""
        return any(d in self.DATABASE_URL for d in [
            "supabase.co",
            "supabase.com",
            "pooler.supabase",
        ])

# Create a global settings instance
settings = Settings()

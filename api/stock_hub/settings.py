# stock_hub/settings.py
"""
Stock Hub Settings - shared by the data tier and the business tier.
"""
from __future__ import annotations
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices

class Settings(BaseSettings):
    # =========================================================================
    # File Storage (logs)
    # =========================================================================
    STOCK_DATA_ROOT: Path = Field(
        default=(Path(__file__).resolve().parents[2] / "stock-data"),
        validation_alias=AliasChoices("STOCK_DATA_ROOT", "sh_data_root"),
    )

    LOG_LEVEL: str = Field(default="INFO")
    LOG_TO_CONSOLE: bool = Field(default=False)

    # =========================================================================
    # PostgreSQL Database (data tier only)
    # =========================================================================
    DB_HOST: str = Field(default="localhost", validation_alias="DB_HOST")
    DB_PORT: int = Field(default=5432, validation_alias="DB_PORT")
    DB_NAME: str = Field(default="stock_hub", validation_alias="DB_NAME")
    DB_USER: str = Field(default="postgres", validation_alias="DB_USER")
    DB_PASSWORD: str = Field(default="postgres", validation_alias="DB_PASSWORD")

    # Connection pool settings
    DB_POOL_SIZE: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    DB_MAX_OVERFLOW: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    DB_ECHO: bool = Field(default=False, validation_alias="DB_ECHO")

    # Full async URL override (sqlite+aiosqlite:///... for local runs and tests)
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "sh_database_url"),
    )

    # =========================================================================
    # Stock rules
    # =========================================================================
    STOCK_MUTATION_MAX_ATTEMPTS: int = Field(default=3, ge=1)

    # =========================================================================
    # Business tier -> data tier
    # =========================================================================
    DATA_SERVICE_URL: str = Field(default="http://localhost:8081")
    DATA_SERVICE_TIMEOUT: float = Field(default=5.0, gt=0)
    REQUEST_DEADLINE_SECONDS: float = Field(default=10.0, gt=0)

    # =========================================================================
    # Reports
    # =========================================================================
    REPORT_TOP_N: int = Field(default=10, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()

STOCK_DATA_ROOT = settings.STOCK_DATA_ROOT

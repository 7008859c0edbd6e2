"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Security
    jwt_secret: str = Field(
        default="change-this-to-a-secure-random-string-in-production",
        description="JWT signing secret",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_expiration_minutes: int = Field(default=1440, description="JWT expiration (24h)")

    # Database
    db_path: str = Field(default="./data/opshealth.duckdb", description="DuckDB file path")
    enforce_snapshot_key: bool = Field(
        default=True,
        description="Create pnl_snapshots with a unique natural key (upsert mode)",
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_reload: bool = Field(default=True, description="Enable hot reload")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Labour estimation for the direct channel
    avg_hourly_rate: float = Field(
        default=30.0, gt=0, description="Average hourly rate applied to shift hours"
    )
    super_rate: float = Field(
        default=0.115, ge=0.0, le=1.0, description="Superannuation rate on wages"
    )
    overtime_loading: float = Field(
        default=0.5, ge=0.0, description="Loading applied to hours beyond an ordinary shift"
    )
    ordinary_hours_per_shift: float = Field(
        default=7.6, gt=0, description="Ordinary hours per shift before overtime"
    )

    # Tenancy
    default_operating_mode: str = Field(
        default="venue", description="Operating mode for orgs without a stored flag"
    )

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")
    testing: bool = Field(default=False, description="Testing mode")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> List[str]:
        """Parse comma-separated CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("default_operating_mode")
    @classmethod
    def validate_operating_mode(cls, v: str) -> str:
        """Operating mode must be one the health scorer knows."""
        v = v.strip().lower()
        if v not in ("venue", "home_cook"):
            raise ValueError("default_operating_mode must be 'venue' or 'home_cook'")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()

"""
Application configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from functools import lru_cache

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

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    app_name: str = Field(default="Cosmic Forge", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    # ==========================================================================
    # Formula Engine Limits
    # ==========================================================================
    formula_max_length: int = Field(
        default=4000, gt=0, description="Maximum formula source length in characters"
    )
    formula_max_depth: int = Field(
        default=64, gt=0, le=200, description="Maximum expression nesting depth"
    )
    formula_max_steps: int = Field(
        default=10000, gt=0, description="Evaluation step budget per formula"
    )
    formula_max_string_length: int = Field(
        default=100_000, gt=0, description="Maximum length of a string produced by a formula"
    )
    formula_max_value_size: int = Field(
        default=250_000,
        gt=0,
        description="Maximum size of a list or object built by a formula (members plus text characters)",
    )
    formula_cache_size: int = Field(
        default=256, gt=0, description="Number of parsed formulas kept in the AST cache"
    )
    formula_error_prefix: str = Field(
        default="ERROR: ",
        description="Prefix of the error string stored for failed computed fields",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Global settings instance
settings = get_settings()

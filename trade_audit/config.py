"""
Configuration management using Pydantic

This module provides application-wide configuration using Pydantic BaseSettings
with support for environment variables and type validation.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Application configuration settings.

    All settings can be overridden using environment variables.
    For example, TRADE_AUDIT_API_PORT will override api_port.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRADE_AUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    app_name: str = Field(default="Trade Audit Console API", description="Service name")
    api_host: str = Field(default="localhost", description="API server host")
    api_port: int = Field(default=8000, description="API server port")
    allowed_origins: List[str] = Field(
        default=["*"],
        description="CORS allowed origins"
    )

    # Matching Parameters
    exclude_unpriced_orders: bool = Field(
        default=True,
        description="Drop orders without a tradable price (e.g. subscriptions) "
                    "before matching instead of treating them as price zero"
    )

    # Listing
    default_page_size: int = Field(default=20, description="Default page size for order listings")
    max_page_size: int = Field(default=200, description="Maximum page size for order listings")

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_dir: Optional[str] = Field(
        default=None,
        description="Directory for log files (console only when unset)"
    )
    log_json: bool = Field(
        default=False,
        description="Emit structured JSON log lines"
    )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    return settings

# ============================================================================
# MODULE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: Centralized configuration for the outbound context broker client
# EXPORTS: AppConfig, get_app_config, validate_configuration
# DEPENDENCIES: pydantic-settings
# SOURCE: Environment variables, optional .env file
# PATTERNS: Singleton pattern for config
# ============================================================================

"""
Application Configuration Module

Provides centralized configuration for talking to an NGSI v2 context broker:
- Broker base URL and request timeout
- Optional multi-tenancy headers (Fiware-Service / Fiware-ServicePath)

Usage:
    from config import get_app_config

    config = get_app_config()
    client = Ngsi2Client(base_url=config.ngsi2_broker_url)
"""

import logging
from typing import Dict, Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        ngsi2_broker_url: Base URL of the context broker (without /v2)
        ngsi2_timeout_seconds: Per-request timeout for broker calls
        ngsi2_fiware_service: Optional tenant sent as Fiware-Service
        ngsi2_fiware_service_path: Optional Fiware-ServicePath
        debug_logging: Enable DEBUG level for component loggers
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    ngsi2_broker_url: str = Field(
        default="",
        description="Context broker base URL (e.g. http://orion:1026)"
    )
    ngsi2_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Request timeout in seconds"
    )
    ngsi2_fiware_service: Optional[str] = Field(
        default=None,
        description="Tenant name sent in the Fiware-Service header"
    )
    ngsi2_fiware_service_path: Optional[str] = Field(
        default=None,
        description="Service path sent in the Fiware-ServicePath header"
    )
    debug_logging: bool = Field(
        default=False,
        description="Enable DEBUG level logging"
    )

    @field_validator("ngsi2_fiware_service_path")
    @classmethod
    def validate_service_path(cls, v: Optional[str]) -> Optional[str]:
        """Service paths are absolute."""
        if v and not v.startswith("/"):
            raise ValueError("NGSI2_FIWARE_SERVICE_PATH must start with '/'")
        return v

    def tenant_headers(self) -> Dict[str, str]:
        """
        Build the optional multi-tenancy headers.

        Returns:
            Dict with Fiware-Service / Fiware-ServicePath when configured
        """
        headers = {}
        if self.ngsi2_fiware_service:
            headers["Fiware-Service"] = self.ngsi2_fiware_service
        if self.ngsi2_fiware_service_path:
            headers["Fiware-ServicePath"] = self.ngsi2_fiware_service_path
        return headers


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValidationError: If environment variables hold invalid values
    """
    return AppConfig()


# ============================================================================
# Configuration Validation
# ============================================================================

def validate_configuration() -> bool:
    """
    Validate configuration on application startup.

    Returns:
        bool: True if configuration is valid

    Raises:
        Exception: If configuration validation fails
    """
    try:
        config = get_app_config()
        logger.info("Configuration validation:")
        logger.info(f"  Broker URL: {config.ngsi2_broker_url or '(not set)'}")
        logger.info(f"  Timeout: {config.ngsi2_timeout_seconds}s")
        logger.info(f"  Fiware-Service: {config.ngsi2_fiware_service}")
        logger.info(f"  Fiware-ServicePath: {config.ngsi2_fiware_service_path}")
        return True

    except Exception as e:
        logger.error(f"❌ Configuration validation failed: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    validate_configuration()

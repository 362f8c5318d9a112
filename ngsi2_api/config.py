# ============================================================================
# MODULE CONTEXT - NGSI v2 API CONFIGURATION
# ============================================================================
# STATUS: Standalone Configuration - NGSI v2 Function App endpoints
# PURPOSE: Route prefix, handler module and validation limits for ngsi2_api
# EXPORTS: Ngsi2ApiConfig, get_ngsi2_api_config
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: Ngsi2ApiConfig
# DEPENDENCIES: pydantic, os
# SOURCE: Environment variables (no dependency on main app config)
# PATTERNS: Settings Pattern, Singleton via cached function
# ENTRY_POINTS: from ngsi2_api.config import get_ngsi2_api_config
# ============================================================================

"""
NGSI v2 API Configuration - Standalone

Environment Variables:
    Optional:
    - NGSI2_ROUTE_PREFIX: Route prefix of every endpoint (default: "v2")
    - NGSI2_HANDLERS_MODULE: Dotted module exposing `register(registry)`
      that installs the operation handlers (default: none, every
      operation answers 501)
    - NGSI2_MAX_FIELD_LENGTH: Longest accepted id/type/attribute name
      (default: 256)
"""

import os
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Ngsi2ApiConfig(BaseModel):
    """Configuration for the NGSI v2 endpoints."""

    # Environment values arrive as defaults and still need validating
    model_config = ConfigDict(validate_default=True)

    route_prefix: str = Field(
        default_factory=lambda: os.getenv("NGSI2_ROUTE_PREFIX", "v2"),
        description="Route prefix (without leading or trailing slash)"
    )
    handlers_module: Optional[str] = Field(
        default_factory=lambda: os.getenv("NGSI2_HANDLERS_MODULE") or None,
        description="Module providing register(registry)"
    )
    max_field_length: int = Field(
        default_factory=lambda: os.getenv("NGSI2_MAX_FIELD_LENGTH", "256"),
        ge=1,
        description="Maximum length of validated request fields"
    )

    @field_validator("route_prefix")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        v = v.strip("/")
        if not v:
            raise ValueError("NGSI2_ROUTE_PREFIX must not be empty")
        return v

    def resource_path(self, *segments: str) -> str:
        """Absolute path of a resource, e.g. /v2/entities/room1."""
        return "/" + "/".join((self.route_prefix,) + segments)


# Singleton instance cache
_config_cache: Optional[Ngsi2ApiConfig] = None


def get_ngsi2_api_config() -> Ngsi2ApiConfig:
    """
    Get singleton NGSI v2 API configuration instance.

    Returns:
        Cached configuration instance
    """
    global _config_cache

    if _config_cache is None:
        _config_cache = Ngsi2ApiConfig()

    return _config_cache

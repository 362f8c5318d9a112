# ============================================================================
# MODULE CONTEXT - NGSI v2 API MODULE
# ============================================================================
# STATUS: Standalone Module - NGSI v2 endpoints for Azure Functions
# PURPOSE: Serve the NGSI v2 API on top of pluggable operation handlers
# EXPORTS: Ngsi2Service, Ngsi2ApiConfig, Ngsi2HandlerRegistry, Operation,
#          get_ngsi2_triggers
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# DEPENDENCIES: azure-functions, pydantic, ngsi2
# SOURCE: Environment variables (NGSI2_*), handler module
# SCOPE: NGSI v2 serving side - portable to any Function App
# VALIDATION: SyntaxValidator, GeoQuery parser, Pydantic models
# PATTERNS: Service Layer, Strategy registry, Standalone Module
# ENTRY_POINTS: from ngsi2_api import get_ngsi2_triggers
# ============================================================================

"""
NGSI v2 API - Standalone Module

Serves the NGSI v2 HTTP API from Azure Functions. The module does not store
anything itself: each operation is delegated to a handler registered in an
Ngsi2HandlerRegistry. Operations without a handler answer 501.

Architecture:
    ngsi2_api/
    ├── config.py      # Environment-based configuration
    ├── registry.py    # Operation enum + handler registry
    ├── service.py     # Validation, dispatch, rendering
    └── triggers.py    # Azure Functions HTTP handlers

Handler module (NGSI2_HANDLERS_MODULE):
    from ngsi2_api import Operation

    def register(registry):
        registry.register(Operation.RETRIEVE_ENTITY, my_retrieve_entity)

Date: 18 OCT 2026
"""

from .config import Ngsi2ApiConfig, get_ngsi2_api_config
from .registry import Ngsi2HandlerRegistry, Operation, load_handlers
from .service import Ngsi2Service, ServiceResponse
from .triggers import get_ngsi2_triggers

__version__ = "1.0.0"
__all__ = [
    "Ngsi2ApiConfig",
    "get_ngsi2_api_config",
    "Ngsi2HandlerRegistry",
    "Operation",
    "load_handlers",
    "Ngsi2Service",
    "ServiceResponse",
    "get_ngsi2_triggers"
]

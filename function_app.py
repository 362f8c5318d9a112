# ============================================================================
# MODULE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the NGSI v2 API
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, ngsi2_api
# ============================================================================

"""
Azure Functions Entry Point for the NGSI v2 adapter

This module serves as the main entry point for the Azure Functions runtime.
It registers the NGSI v2 HTTP triggers and a health check.

Architecture:
    - NGSI v2 API: 13 routes (entities, attributes, types, registrations,
      subscriptions, batch operations) under NGSI2_ROUTE_PREFIX
    - Health check: /health

Operation handlers come from the module named by NGSI2_HANDLERS_MODULE;
without one, every NGSI v2 operation answers 501 Not Implemented.

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import azure.functions as func
import json
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# NGSI v2 API - 13 Routes
# ============================================================================

from ngsi2_api import get_ngsi2_triggers

logger.info("Registering NGSI v2 API endpoints...")

# Keyed by trigger name so each route gets a unique function name
triggers = {trigger['name']: trigger for trigger in get_ngsi2_triggers()}


# API resources
@app.route(route=triggers['resources']['route'], methods=triggers['resources']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_resources(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['resources']['handler'](req)


# Entities (list / create)
@app.route(route=triggers['entities']['route'], methods=triggers['entities']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_entities(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['entities']['handler'](req)


# Single entity
@app.route(route=triggers['entity']['route'], methods=triggers['entity']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_entity(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['entity']['handler'](req)


# Single attribute
@app.route(route=triggers['attribute']['route'], methods=triggers['attribute']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_attribute(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['attribute']['handler'](req)


# Attribute value (JSON or text/plain)
@app.route(route=triggers['attribute_value']['route'], methods=triggers['attribute_value']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_attribute_value(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['attribute_value']['handler'](req)


# Entity types
@app.route(route=triggers['types']['route'], methods=triggers['types']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_types(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['types']['handler'](req)


# Single entity type
@app.route(route=triggers['type']['route'], methods=triggers['type']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_type(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['type']['handler'](req)


# Registrations
@app.route(route=triggers['registrations']['route'], methods=triggers['registrations']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_registrations(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['registrations']['handler'](req)


# Single registration
@app.route(route=triggers['registration']['route'], methods=triggers['registration']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_registration(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['registration']['handler'](req)


# Subscriptions
@app.route(route=triggers['subscriptions']['route'], methods=triggers['subscriptions']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_subscriptions(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['subscriptions']['handler'](req)


# Single subscription
@app.route(route=triggers['subscription']['route'], methods=triggers['subscription']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_subscription(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['subscription']['handler'](req)


# Batch update
@app.route(route=triggers['bulk_update']['route'], methods=triggers['bulk_update']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_bulk_update(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['bulk_update']['handler'](req)


# Batch query
@app.route(route=triggers['bulk_query']['route'], methods=triggers['bulk_query']['methods'],
           auth_level=func.AuthLevel.ANONYMOUS)
def ngsi2_bulk_query(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['bulk_query']['handler'](req)


logger.info(f"✅ NGSI v2 API registered successfully ({len(triggers)} routes)")

# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Public health check endpoint.

    Always returns 200 - lists the routes served by this Function App.

    Returns:
        JSON: {"status": "healthy", "routes": [...]}
    """
    result = {
        "status": "healthy",
        "routes": sorted(trigger['route'] for trigger in triggers.values())
    }

    return func.HttpResponse(
        json.dumps(result),
        mimetype="application/json",
        status_code=200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )

# ============================================================================
# Application Startup
# ============================================================================

logger.info("="*60)
logger.info("Function App initialized successfully")
logger.info("Available endpoints:")
logger.info("  - GET /health - Health check")
for _trigger in triggers.values():
    logger.info(f"  - {'/'.join(_trigger['methods'])} /{_trigger['route']}")
logger.info("="*60)

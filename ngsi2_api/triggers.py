# ============================================================================
# MODULE CONTEXT - NGSI v2 TRIGGERS
# ============================================================================
# STATUS: Standalone HTTP Triggers - NGSI v2 endpoints
# PURPOSE: Azure Functions HTTP triggers for the NGSI v2 API
# EXPORTS: get_ngsi2_triggers (returns list of trigger configurations)
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# DEPENDENCIES: azure.functions, typing, ngsi2_api.service, util_logger
# SOURCE: HTTP requests from NGSI v2 clients
# SCOPE: HTTP endpoint handlers for NGSI v2
# PATTERNS: Trigger Pattern, Factory Pattern (get_ngsi2_triggers)
# ENTRY_POINTS: Function App route registration via get_ngsi2_triggers()
# ============================================================================

"""
NGSI v2 HTTP Triggers - Azure Functions Handlers

Endpoints (under the configured prefix, default "v2"):
- GET                       /v2
- GET, POST                 /v2/entities
- GET, POST, PATCH, PUT, DELETE  /v2/entities/{entity_id}
- GET, PUT, DELETE          /v2/entities/{entity_id}/attrs/{attr_name}
- GET, PUT                  /v2/entities/{entity_id}/attrs/{attr_name}/value
- GET                       /v2/types
- GET                       /v2/types/{entity_type}
- GET, POST                 /v2/registrations
- GET, PATCH, DELETE        /v2/registrations/{registration_id}
- GET, POST                 /v2/subscriptions
- GET, PATCH, DELETE        /v2/subscriptions/{subscription_id}
- POST                      /v2/op/update
- POST                      /v2/op/query

Each trigger:
1. Reads route parameters, query parameters, body and headers
2. Calls the service layer
3. Returns the service result as an HttpResponse
4. Turns raised errors into NGSI error bodies

Integration:
    In function_app.py:

    from ngsi2_api import get_ngsi2_triggers

    triggers = {t['name']: t for t in get_ngsi2_triggers()}

    @app.route(route=triggers['entities']['route'], methods=triggers['entities']['methods'], ...)
    def ngsi2_entities(req: func.HttpRequest) -> func.HttpResponse:
        return triggers['entities']['handler'](req)

Date: 18 OCT 2026
"""

import azure.functions as func
from typing import Any, Callable, Dict, List, Optional

from ngsi2.exceptions import Ngsi2Error
from util_logger import ComponentType, LoggerFactory

from .config import get_ngsi2_api_config
from .registry import Ngsi2HandlerRegistry, load_handlers
from .service import Ngsi2Service, ServiceResponse

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "ngsi2_api.triggers")


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_ngsi2_triggers(registry: Optional[Ngsi2HandlerRegistry] = None) -> List[Dict[str, Any]]:
    """
    Get list of NGSI v2 trigger configurations for function_app.py.

    Args:
        registry: Operation handlers; when omitted, a registry is built and
            filled from NGSI2_HANDLERS_MODULE

    Returns:
        List of dicts with keys:
        - name: Stable trigger name
        - route: URL route pattern (prefixed)
        - methods: List of HTTP methods
        - handler: Callable trigger handler
    """
    config = get_ngsi2_api_config()
    if registry is None:
        registry = load_handlers(Ngsi2HandlerRegistry(), config.handlers_module)
    service = Ngsi2Service(registry, config)
    prefix = config.route_prefix

    triggers = [
        ('resources', '', ['GET'], ResourcesTrigger),
        ('entities', '/entities', ['GET', 'POST'], EntitiesTrigger),
        ('entity', '/entities/{entity_id}', ['GET', 'POST', 'PATCH', 'PUT', 'DELETE'], EntityTrigger),
        ('attribute', '/entities/{entity_id}/attrs/{attr_name}', ['GET', 'PUT', 'DELETE'], AttributeTrigger),
        ('attribute_value', '/entities/{entity_id}/attrs/{attr_name}/value', ['GET', 'PUT'], AttributeValueTrigger),
        ('types', '/types', ['GET'], EntityTypesTrigger),
        ('type', '/types/{entity_type}', ['GET'], EntityTypeTrigger),
        ('registrations', '/registrations', ['GET', 'POST'], RegistrationsTrigger),
        ('registration', '/registrations/{registration_id}', ['GET', 'PATCH', 'DELETE'], RegistrationTrigger),
        ('subscriptions', '/subscriptions', ['GET', 'POST'], SubscriptionsTrigger),
        ('subscription', '/subscriptions/{subscription_id}', ['GET', 'PATCH', 'DELETE'], SubscriptionTrigger),
        ('bulk_update', '/op/update', ['POST'], BulkUpdateTrigger),
        ('bulk_query', '/op/query', ['POST'], BulkQueryTrigger),
    ]
    return [
        {
            'name': name,
            'route': f"{prefix}{path}",
            'methods': methods,
            'handler': trigger_class(service).handle
        }
        for name, path, methods, trigger_class in triggers
    ]


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

class BaseNgsi2Trigger:
    """
    Base class for NGSI v2 triggers.

    Provides common functionality:
    - Method dispatch (subclasses define one method per HTTP verb)
    - ServiceResponse to HttpResponse conversion
    - Error handling (NGSI error body, text/plain when asked)
    """

    def __init__(self, service: Ngsi2Service):
        self.service = service

    def _dispatch(self, req: func.HttpRequest) -> Optional[Callable[[func.HttpRequest], ServiceResponse]]:
        if req.method.upper() not in self.allowed_methods():
            return None
        return getattr(self, f"_{req.method.lower()}")

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        """
        Handle a request routed to this trigger.

        Args:
            req: Azure Functions HTTP request

        Returns:
            HttpResponse with the NGSI representation or error body
        """
        accept = req.headers.get('Accept')
        method = self._dispatch(req)
        if method is None:
            return func.HttpResponse(status_code=405, headers={'Allow': ', '.join(self.allowed_methods())})

        try:
            result = method(req)
        except Ngsi2Error as e:
            if e.status_code < 500:
                logger.warning(f"{req.method} {req.url} rejected: {e}")
            else:
                logger.error(f"{req.method} {req.url} failed: {e}")
            result = self.service.error_response(e, accept)
        except Exception as e:
            # logged with traceback by the service
            result = self.service.error_response(e, accept)

        return self._http_response(result)

    def allowed_methods(self) -> List[str]:
        return [verb.upper() for verb in ('get', 'post', 'put', 'patch', 'delete') if hasattr(self, f"_{verb}")]

    @staticmethod
    def _http_response(result: ServiceResponse) -> func.HttpResponse:
        return func.HttpResponse(
            body=result.render(),
            status_code=result.status_code,
            headers=result.headers,
            mimetype=result.mimetype
        )

    @staticmethod
    def _params(req: func.HttpRequest) -> Dict[str, str]:
        return dict(req.params)


# ============================================================================
# ENDPOINT TRIGGERS
# ============================================================================

class ResourcesTrigger(BaseNgsi2Trigger):
    """Endpoint: GET /v2"""

    def _get(self, req):
        return self.service.list_resources()


class EntitiesTrigger(BaseNgsi2Trigger):
    """
    Entities collection.

    Endpoint: GET, POST /v2/entities

    Query Parameters (GET):
    - id / idPattern: Entity ids (comma separated) or id regex (not both)
    - type: Entity types (comma separated)
    - attrs: Attributes to return
    - query: Simple query expression
    - georel, geometry, coords: Geo-query (all three together)
    - orderBy, offset, limit
    - options: count, keyValues, values
    """

    def _get(self, req):
        return self.service.list_entities(self._params(req))

    def _post(self, req):
        return self.service.create_entity(req.get_body())


class EntityTrigger(BaseNgsi2Trigger):
    """Endpoint: /v2/entities/{entity_id}"""

    def _get(self, req):
        return self.service.retrieve_entity(req.route_params.get('entity_id'), self._params(req))

    def _post(self, req):
        return self.service.update_or_append_entity(
            req.route_params.get('entity_id'), self._params(req), req.get_body())

    def _patch(self, req):
        return self.service.update_existing_entity_attributes(
            req.route_params.get('entity_id'), self._params(req), req.get_body())

    def _put(self, req):
        return self.service.replace_all_entity_attributes(
            req.route_params.get('entity_id'), self._params(req), req.get_body())

    def _delete(self, req):
        return self.service.remove_entity(req.route_params.get('entity_id'), self._params(req))


class AttributeTrigger(BaseNgsi2Trigger):
    """Endpoint: /v2/entities/{entity_id}/attrs/{attr_name}"""

    def _get(self, req):
        return self.service.retrieve_attribute(
            req.route_params.get('entity_id'), req.route_params.get('attr_name'), self._params(req))

    def _put(self, req):
        return self.service.update_attribute(
            req.route_params.get('entity_id'), req.route_params.get('attr_name'),
            self._params(req), req.get_body())

    def _delete(self, req):
        return self.service.remove_attribute(
            req.route_params.get('entity_id'), req.route_params.get('attr_name'), self._params(req))


class AttributeValueTrigger(BaseNgsi2Trigger):
    """
    Endpoint: /v2/entities/{entity_id}/attrs/{attr_name}/value

    GET honours Accept (application/json or text/plain); PUT honours
    Content-Type.
    """

    def _get(self, req):
        return self.service.retrieve_attribute_value(
            req.route_params.get('entity_id'), req.route_params.get('attr_name'),
            self._params(req), req.headers.get('Accept'))

    def _put(self, req):
        return self.service.update_attribute_value(
            req.route_params.get('entity_id'), req.route_params.get('attr_name'),
            self._params(req), req.get_body(), req.headers.get('Content-Type'))


class EntityTypesTrigger(BaseNgsi2Trigger):
    """Endpoint: GET /v2/types"""

    def _get(self, req):
        return self.service.retrieve_entity_types(self._params(req))


class EntityTypeTrigger(BaseNgsi2Trigger):
    """Endpoint: GET /v2/types/{entity_type}"""

    def _get(self, req):
        return self.service.retrieve_entity_type(req.route_params.get('entity_type'))


class RegistrationsTrigger(BaseNgsi2Trigger):
    """Endpoint: GET, POST /v2/registrations"""

    def _get(self, req):
        return self.service.list_registrations()

    def _post(self, req):
        return self.service.create_registration(req.get_body())


class RegistrationTrigger(BaseNgsi2Trigger):
    """Endpoint: /v2/registrations/{registration_id}"""

    def _get(self, req):
        return self.service.retrieve_registration(req.route_params.get('registration_id'))

    def _patch(self, req):
        return self.service.update_registration(req.route_params.get('registration_id'), req.get_body())

    def _delete(self, req):
        return self.service.remove_registration(req.route_params.get('registration_id'))


class SubscriptionsTrigger(BaseNgsi2Trigger):
    """Endpoint: GET, POST /v2/subscriptions"""

    def _get(self, req):
        return self.service.list_subscriptions(self._params(req))

    def _post(self, req):
        return self.service.create_subscription(req.get_body())


class SubscriptionTrigger(BaseNgsi2Trigger):
    """Endpoint: /v2/subscriptions/{subscription_id}"""

    def _get(self, req):
        return self.service.retrieve_subscription(req.route_params.get('subscription_id'))

    def _patch(self, req):
        return self.service.update_subscription(req.route_params.get('subscription_id'), req.get_body())

    def _delete(self, req):
        return self.service.remove_subscription(req.route_params.get('subscription_id'))


class BulkUpdateTrigger(BaseNgsi2Trigger):
    """Endpoint: POST /v2/op/update"""

    def _post(self, req):
        return self.service.bulk_update(req.get_body())


class BulkQueryTrigger(BaseNgsi2Trigger):
    """Endpoint: POST /v2/op/query (offset, limit and options as query parameters)"""

    def _post(self, req):
        return self.service.bulk_query(self._params(req), req.get_body())

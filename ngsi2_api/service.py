# ============================================================================
# MODULE CONTEXT - NGSI v2 SERVICE
# ============================================================================
# STATUS: Standalone Service - NGSI v2 Function App business logic
# PURPOSE: Validate incoming NGSI v2 requests, dispatch to registered handlers,
#          shape responses and error bodies
# EXPORTS: Ngsi2Service, ServiceResponse
# INTERFACES: Framework agnostic (plain dicts / bytes in, ServiceResponse out)
# PYDANTIC_MODELS: Entity, Attribute, Registration, Subscription, Bulk* requests
# DEPENDENCIES: pydantic, json, ngsi2, util_logger
# SOURCE: Registered operation handlers (Ngsi2HandlerRegistry)
# SCOPE: Request validation, option handling, representation negotiation
# VALIDATION: SyntaxValidator, GeoQuery parser, Pydantic model validation
# PATTERNS: Service Layer, Facade Pattern
# ENTRY_POINTS: service = Ngsi2Service(registry); service.list_entities(params)
# ============================================================================

"""
NGSI v2 Service - Business Logic Layer

Sits between the HTTP triggers and the handlers supplied by the server
implementation. Handles:
- Parameter validation (id/idPattern exclusivity, field syntax, geo-query)
- Options (count, keyValues, values, append)
- Payload decoding into Pydantic models
- Representation negotiation (application/json vs text/plain)
- Error bodies for every error kind

Every endpoint method returns a ServiceResponse or raises an Ngsi2Error;
`error_response()` turns any exception into the NGSI error body.

Date: 18 OCT 2026
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from ngsi2.exceptions import (
    BadRequestError,
    InternalError,
    Ngsi2Error,
    NotAcceptableError,
    UnsupportedOptionError,
)
from ngsi2.models import Attribute, Entity, Paginated
from ngsi2.parsing import parse_geo_query, parse_text_value, value_to_text
from ngsi2.query import (
    OPTION_APPEND,
    OPTION_COUNT,
    OPTION_KEY_VALUES,
    OPTION_VALUES,
    EntityQuery,
)
from ngsi2.decoding import TOTAL_COUNT_HEADER
from ngsi2.subscriptions import (
    BulkQueryRequest,
    BulkUpdateRequest,
    Registration,
    Subscription,
)
from ngsi2.validation import SyntaxValidator, check_incompatible
from util_logger import ComponentType, LoggerFactory

from .config import Ngsi2ApiConfig, get_ngsi2_api_config
from .registry import Ngsi2HandlerRegistry, Operation

JSON_MIMETYPE = "application/json"
TEXT_MIMETYPE = "text/plain"

GEO_PARAMETERS = ("georel", "geometry", "coords")
ENTITY_OPTIONS = (OPTION_COUNT, OPTION_KEY_VALUES, OPTION_VALUES)

Body = Union[bytes, str, None]


@dataclass
class ServiceResponse:
    """Framework agnostic response produced by Ngsi2Service."""
    status_code: int = 200
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    mimetype: str = JSON_MIMETYPE

    def render(self) -> Optional[str]:
        """Body as text: JSON document, plain text, or None for no content."""
        if self.body is None:
            return None
        if self.mimetype == TEXT_MIMETYPE:
            return str(self.body)
        return json.dumps(self.body)


def accepts_text_only(accept: Optional[str]) -> bool:
    """True when the Accept header asks for text/plain and not JSON."""
    accept = (accept or "").lower()
    return TEXT_MIMETYPE in accept and JSON_MIMETYPE not in accept and "*/*" not in accept


def split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item for item in value.split(",") if item]


def _body_text(body: Body) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8")
    return body


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else item.get("msg", ""))
    return "; ".join(parts)


class Ngsi2Service:
    """
    NGSI v2 request handling.

    Responsibilities:
    - Validate parameters and payloads before any handler runs
    - Call the handler registered for the operation
    - Render results (normalized, keyValues, values, text/plain)
    - Set Location and X-Total-Count headers
    """

    def __init__(self, registry: Optional[Ngsi2HandlerRegistry] = None,
                 config: Optional[Ngsi2ApiConfig] = None):
        """
        Initialize service.

        Args:
            registry: Operation handlers (every operation unsupported if not provided)
            config: API configuration (uses singleton if not provided)
        """
        self.config = config or get_ngsi2_api_config()
        self.registry = registry or Ngsi2HandlerRegistry()
        self.logger = LoggerFactory.create_logger(ComponentType.SERVICE, "Ngsi2Service")
        self.logger.info(f"Ngsi2Service initialized ({len(self.registry.supported_operations())} operations supported)")

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _validator(self) -> SyntaxValidator:
        return SyntaxValidator(self.config.max_field_length)

    def _call(self, operation: Operation, *args) -> Any:
        self.logger.debug(f"Dispatching {operation.value}")
        return self.registry.get(operation)(*args)

    def _json_payload(self, body: Body) -> Any:
        try:
            return json.loads(_body_text(body))
        except ValueError:  # UnicodeDecodeError included
            raise BadRequestError("the incoming JSON payload cannot be parsed") from None

    def _model(self, factory: Callable[[Any], Any], payload: Any) -> Any:
        try:
            return factory(payload)
        except ValidationError as e:
            raise BadRequestError(_validation_message(e)) from None
        except TypeError as e:
            raise BadRequestError(str(e)) from None

    def _attributes(self, payload: Any) -> Dict[str, Attribute]:
        if not isinstance(payload, dict):
            raise BadRequestError("attributes payload must be a JSON object")
        reserved = [name for name in ("id", "type") if name in payload]
        if reserved:
            raise BadRequestError(f"attribute names must not be {', '.join(reserved)}")
        return {name: self._model(Attribute.model_validate, value) for name, value in payload.items()}

    def _options(self, params: Mapping[str, str], allowed) -> List[str]:
        options = split_list(params.get("options"))
        for option in options:
            if option not in allowed:
                raise UnsupportedOptionError(option)
        if OPTION_KEY_VALUES in options and OPTION_VALUES in options:
            raise BadRequestError("options keyValues and values cannot be combined")
        return options

    def _int_param(self, params: Mapping[str, str], name: str) -> int:
        raw = params.get(name)
        if raw is None or raw == "":
            return 0
        try:
            value = int(raw)
        except ValueError:
            raise BadRequestError(f"{name} must be an integer, got '{raw}'") from None
        if value < 0:
            raise BadRequestError(f"{name} must not be negative, got {value}")
        return value

    def _geo_query(self, params: Mapping[str, str]):
        values = [params.get(name) for name in GEO_PARAMETERS]
        if all(value is None for value in values):
            return None
        if any(value is None for value in values):
            raise BadRequestError("georel, geometry and coords must be used together")
        return parse_geo_query(*values)

    def _render_entities(self, entities: List[Entity], options: List[str], attrs: List[str]) -> List[Any]:
        return [self._render_entity(entity, options, attrs) for entity in entities]

    def _render_entity(self, entity: Entity, options: List[str], attrs: List[str]) -> Any:
        if OPTION_KEY_VALUES in options:
            return entity.to_key_values()
        if OPTION_VALUES in options:
            return entity.to_values(attrs)
        return entity.to_json()

    def _page_response(self, page: Paginated, items: List[Any], count: bool) -> ServiceResponse:
        headers = {TOTAL_COUNT_HEADER: str(page.total)} if count else {}
        return ServiceResponse(200, items, headers)

    def _created(self, *segments: str) -> ServiceResponse:
        return ServiceResponse(201, headers={"Location": self.config.resource_path(*segments)})

    @staticmethod
    def _no_content() -> ServiceResponse:
        return ServiceResponse(204)

    # ========================================================================
    # ERRORS
    # ========================================================================

    def error_response(self, error: Exception, accept: Optional[str] = None) -> ServiceResponse:
        """
        NGSI error body for any exception.

        Ngsi2Error kinds keep their status; anything else becomes an
        InternalError (500) and is logged with its traceback.
        """
        if not isinstance(error, Ngsi2Error):
            self.logger.error(f"Unexpected error: {error}", exc_info=error)
            error = InternalError(str(error))
        body = error.to_error()
        if accepts_text_only(accept):
            return ServiceResponse(error.status_code, str(body), mimetype=TEXT_MIMETYPE)
        return ServiceResponse(error.status_code, body.to_json())

    # ========================================================================
    # API ROOT
    # ========================================================================

    def list_resources(self) -> ServiceResponse:
        """GET /v2 - resource URLs (built from the route prefix when no handler is registered)."""
        if self.registry.is_supported(Operation.LIST_RESOURCES):
            return ServiceResponse(200, self._call(Operation.LIST_RESOURCES))
        return ServiceResponse(200, {
            "entities_url": self.config.resource_path("entities"),
            "types_url": self.config.resource_path("types"),
            "subscriptions_url": self.config.resource_path("subscriptions"),
            "registrations_url": self.config.resource_path("registrations"),
        })

    # ========================================================================
    # ENTITIES
    # ========================================================================

    def list_entities(self, params: Mapping[str, str]) -> ServiceResponse:
        """
        GET /v2/entities

        Raises:
            IncompatibleParameterError: id and idPattern both given
            InvalidSyntaxError: invalid id / type / attrs values
            BadRequestError: incomplete geo-query, bad offset/limit
            UnsupportedOptionError: option other than count/keyValues/values
        """
        entity_id = params.get("id")
        id_pattern = params.get("idPattern")
        check_incompatible("id", entity_id, "idPattern", id_pattern, Operation.LIST_ENTITIES.value)

        entity_types = params.get("type")
        attrs = params.get("attrs")
        self._validator().field_list(entity_id).field_list(entity_types).field_list(attrs).validate()

        geo_query = self._geo_query(params)
        options = self._options(params, ENTITY_OPTIONS)
        query = EntityQuery(
            ids=split_list(entity_id),
            id_patterns=[id_pattern] if id_pattern else [],
            types=split_list(entity_types),
            attrs=split_list(attrs),
            query=params.get("query") or None,
            geo_query=geo_query,
            order_by=split_list(params.get("orderBy")),
            offset=self._int_param(params, "offset"),
            limit=self._int_param(params, "limit"),
            count=OPTION_COUNT in options,
            options=[o for o in options if o != OPTION_COUNT]
        )

        page = self._call(Operation.LIST_ENTITIES, query)
        items = self._render_entities(page.items, options, query.attrs)
        return self._page_response(page, items, query.count)

    def create_entity(self, body: Body) -> ServiceResponse:
        """POST /v2/entities - 201 with Location of the new entity."""
        entity = self._model(Entity.from_wire, self._json_payload(body))
        self._validator().entity(entity).validate()
        self._call(Operation.CREATE_ENTITY, entity)
        self.logger.info(f"Entity created: {entity.id}")
        return self._created("entities", entity.id)

    def retrieve_entity(self, entity_id: str, params: Mapping[str, str]) -> ServiceResponse:
        entity_type = params.get("type")
        attrs = params.get("attrs")
        self._validator().field(entity_id).field(entity_type).field_list(attrs).validate()
        options = self._options(params, (OPTION_KEY_VALUES, OPTION_VALUES))
        attr_names = split_list(attrs)
        entity = self._call(Operation.RETRIEVE_ENTITY, entity_id, entity_type, attr_names)
        return ServiceResponse(200, self._render_entity(entity, options, attr_names))

    def update_or_append_entity(self, entity_id: str, params: Mapping[str, str], body: Body) -> ServiceResponse:
        """POST /v2/entities/{id} - options=append restricts to new attributes."""
        entity_type = params.get("type")
        options = self._options(params, (OPTION_APPEND,))
        attributes = self._attributes(self._json_payload(body))
        self._validator().field(entity_id).field(entity_type).attributes(attributes).validate()
        self._call(Operation.UPDATE_OR_APPEND_ENTITY, entity_id, entity_type, attributes, OPTION_APPEND in options)
        return self._no_content()

    def update_existing_entity_attributes(self, entity_id: str, params: Mapping[str, str], body: Body) -> ServiceResponse:
        entity_type = params.get("type")
        attributes = self._attributes(self._json_payload(body))
        self._validator().field(entity_id).field(entity_type).attributes(attributes).validate()
        self._call(Operation.UPDATE_EXISTING_ENTITY_ATTRIBUTES, entity_id, entity_type, attributes)
        return self._no_content()

    def replace_all_entity_attributes(self, entity_id: str, params: Mapping[str, str], body: Body) -> ServiceResponse:
        entity_type = params.get("type")
        attributes = self._attributes(self._json_payload(body))
        self._validator().field(entity_id).field(entity_type).attributes(attributes).validate()
        self._call(Operation.REPLACE_ALL_ENTITY_ATTRIBUTES, entity_id, entity_type, attributes)
        return self._no_content()

    def remove_entity(self, entity_id: str, params: Mapping[str, str]) -> ServiceResponse:
        entity_type = params.get("type")
        self._validator().field(entity_id).field(entity_type).validate()
        self._call(Operation.REMOVE_ENTITY, entity_id, entity_type)
        return self._no_content()

    # ========================================================================
    # ENTITY TYPES
    # ========================================================================

    def retrieve_entity_types(self, params: Mapping[str, str]) -> ServiceResponse:
        options = self._options(params, (OPTION_COUNT,))
        page = self._call(
            Operation.RETRIEVE_ENTITY_TYPES,
            self._int_param(params, "offset"),
            self._int_param(params, "limit")
        )
        return self._page_response(page, [item.to_json() for item in page.items], OPTION_COUNT in options)

    def retrieve_entity_type(self, entity_type: str) -> ServiceResponse:
        self._validator().field(entity_type).validate()
        return ServiceResponse(200, self._call(Operation.RETRIEVE_ENTITY_TYPE, entity_type).to_json())

    # ========================================================================
    # ATTRIBUTES
    # ========================================================================

    def _check_attribute_address(self, entity_id: str, attr_name: str, entity_type: Optional[str]) -> None:
        self._validator().field(entity_id).field(entity_type).field(attr_name).validate()

    def retrieve_attribute(self, entity_id: str, attr_name: str, params: Mapping[str, str]) -> ServiceResponse:
        entity_type = params.get("type")
        self._check_attribute_address(entity_id, attr_name, entity_type)
        attribute = self._call(Operation.RETRIEVE_ATTRIBUTE, entity_id, attr_name, entity_type)
        return ServiceResponse(200, attribute.to_json())

    def update_attribute(self, entity_id: str, attr_name: str, params: Mapping[str, str], body: Body) -> ServiceResponse:
        entity_type = params.get("type")
        self._check_attribute_address(entity_id, attr_name, entity_type)
        attribute = self._model(Attribute.model_validate, self._json_payload(body))
        self._validator().attribute(attribute).validate()
        self._call(Operation.UPDATE_ATTRIBUTE, entity_id, attr_name, entity_type, attribute)
        return self._no_content()

    def remove_attribute(self, entity_id: str, attr_name: str, params: Mapping[str, str]) -> ServiceResponse:
        entity_type = params.get("type")
        self._check_attribute_address(entity_id, attr_name, entity_type)
        self._call(Operation.REMOVE_ATTRIBUTE, entity_id, attr_name, entity_type)
        return self._no_content()

    def retrieve_attribute_value(self, entity_id: str, attr_name: str, params: Mapping[str, str],
                                 accept: Optional[str] = None) -> ServiceResponse:
        """
        GET /v2/entities/{id}/attrs/{name}/value

        JSON callers only get structured values (object/array); scalars and
        null answer 406 and have to be requested as text/plain.
        """
        entity_type = params.get("type")
        self._check_attribute_address(entity_id, attr_name, entity_type)
        value = self._call(Operation.RETRIEVE_ATTRIBUTE_VALUE, entity_id, attr_name, entity_type)
        if accepts_text_only(accept):
            return ServiceResponse(200, value_to_text(value), mimetype=TEXT_MIMETYPE)
        if not isinstance(value, (dict, list)):
            raise NotAcceptableError()
        return ServiceResponse(200, value)

    def update_attribute_value(self, entity_id: str, attr_name: str, params: Mapping[str, str],
                               body: Body, content_type: Optional[str] = None) -> ServiceResponse:
        """PUT /v2/entities/{id}/attrs/{name}/value - JSON or text/plain body."""
        entity_type = params.get("type")
        self._check_attribute_address(entity_id, attr_name, entity_type)
        if (content_type or "").lower().startswith(TEXT_MIMETYPE):
            try:
                text = _body_text(body)
            except UnicodeDecodeError:
                raise NotAcceptableError() from None
            value = parse_text_value(text)
        else:
            value = self._json_payload(body)
        self._call(Operation.UPDATE_ATTRIBUTE_VALUE, entity_id, attr_name, entity_type, value)
        return self._no_content()

    # ========================================================================
    # REGISTRATIONS
    # ========================================================================

    def list_registrations(self) -> ServiceResponse:
        registrations = self._call(Operation.LIST_REGISTRATIONS)
        return ServiceResponse(200, [item.to_json() for item in registrations])

    def create_registration(self, body: Body) -> ServiceResponse:
        registration = self._model(Registration.model_validate, self._json_payload(body))
        self._validator().registration(registration).validate()
        registration_id = self._call(Operation.CREATE_REGISTRATION, registration)
        if registration_id:
            return self._created("registrations", registration_id)
        return ServiceResponse(201)

    def retrieve_registration(self, registration_id: str) -> ServiceResponse:
        self._validator().field(registration_id).validate()
        return ServiceResponse(200, self._call(Operation.RETRIEVE_REGISTRATION, registration_id).to_json())

    def update_registration(self, registration_id: str, body: Body) -> ServiceResponse:
        registration = self._model(Registration.model_validate, self._json_payload(body))
        self._validator().field(registration_id).registration(registration).validate()
        self._call(Operation.UPDATE_REGISTRATION, registration_id, registration)
        return self._no_content()

    def remove_registration(self, registration_id: str) -> ServiceResponse:
        self._validator().field(registration_id).validate()
        self._call(Operation.REMOVE_REGISTRATION, registration_id)
        return self._no_content()

    # ========================================================================
    # SUBSCRIPTIONS
    # ========================================================================

    def list_subscriptions(self, params: Mapping[str, str]) -> ServiceResponse:
        options = self._options(params, (OPTION_COUNT,))
        page = self._call(
            Operation.LIST_SUBSCRIPTIONS,
            self._int_param(params, "offset"),
            self._int_param(params, "limit")
        )
        return self._page_response(page, [item.to_json() for item in page.items], OPTION_COUNT in options)

    def create_subscription(self, body: Body) -> ServiceResponse:
        subscription = self._model(Subscription.model_validate, self._json_payload(body))
        self._validator().subscription(subscription).validate()
        subscription_id = self._call(Operation.CREATE_SUBSCRIPTION, subscription)
        if subscription_id:
            return self._created("subscriptions", subscription_id)
        return ServiceResponse(201)

    def retrieve_subscription(self, subscription_id: str) -> ServiceResponse:
        self._validator().field(subscription_id).validate()
        return ServiceResponse(200, self._call(Operation.RETRIEVE_SUBSCRIPTION, subscription_id).to_json())

    def update_subscription(self, subscription_id: str, body: Body) -> ServiceResponse:
        subscription = self._model(Subscription.model_validate, self._json_payload(body))
        self._validator().field(subscription_id).subscription(subscription).validate()
        self._call(Operation.UPDATE_SUBSCRIPTION, subscription_id, subscription)
        return self._no_content()

    def remove_subscription(self, subscription_id: str) -> ServiceResponse:
        self._validator().field(subscription_id).validate()
        self._call(Operation.REMOVE_SUBSCRIPTION, subscription_id)
        return self._no_content()

    # ========================================================================
    # BATCH OPERATIONS
    # ========================================================================

    def bulk_update(self, body: Body) -> ServiceResponse:
        request = self._model(BulkUpdateRequest.model_validate, self._json_payload(body))
        validator = self._validator()
        for entity in request.entities:
            validator.entity(entity)
        validator.validate()
        self._call(Operation.BULK_UPDATE, request)
        return self._no_content()

    def bulk_query(self, params: Mapping[str, str], body: Body) -> ServiceResponse:
        options = self._options(params, ENTITY_OPTIONS)
        request = self._model(BulkQueryRequest.model_validate, self._json_payload(body))
        self._validator().subject_entities(request.entities).fields(request.attributes).validate()
        page = self._call(
            Operation.BULK_QUERY,
            request,
            self._int_param(params, "offset"),
            self._int_param(params, "limit")
        )
        items = self._render_entities(page.items, options, request.attributes)
        return self._page_response(page, items, OPTION_COUNT in options)

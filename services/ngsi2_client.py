# ============================================================================
# MODULE CONTEXT - NGSI v2 CONTEXT BROKER CLIENT
# ============================================================================
# STATUS: Service Layer - Outbound NGSI v2 client
# PURPOSE: Call an NGSI v2 context broker and decode its responses
# EXPORTS: Ngsi2Client
# DEPENDENCIES: httpx (sync), ngsi2, config, util_logger
# PATTERNS: Lazy client creation, explicit result objects (Ngsi2Response)
# ENTRY_POINTS: Ngsi2Client(base_url="http://orion:1026").get_entities(...)
# ============================================================================
"""
NGSI v2 Context Broker Client (SYNC).

Every call returns an Ngsi2Response:
- success=True: `data` holds the decoded payload (Entity, Paginated, ...)
- success=False: `error` holds the typed error (ConflictingEntitiesError,
  UnsupportedOperationError, ...) decoded from the broker's error body

Transport failures (connection errors, timeouts) are logged and re-raised as
the original httpx exception.

Usage:
    client = Ngsi2Client(base_url="http://orion:1026")

    response = client.get_entities(types=["Room"], limit=10, count=True)
    if response.success:
        for entity in response.data.items:
            print(entity.id, response.data.total)
    else:
        print(response.error.description)

    client.close()
"""

import json
import httpx
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import quote

from pydantic import TypeAdapter

from config import get_app_config
from ngsi2.decoding import Ngsi2Response, decode_paginated, decode_response, location_id
from ngsi2.models import Attribute, Entity, EntityType, GeoQuery
from ngsi2.parsing import value_to_text
from ngsi2.query import OPTION_APPEND, QueryParams, build_query_params, pagination_params
from ngsi2.subscriptions import (
    BulkQueryRequest,
    BulkRegisterRequest,
    BulkUpdateRequest,
    Registration,
    Subscription,
)
from util_logger import ComponentType, LoggerFactory

JSON_MIMETYPE = "application/json"
TEXT_MIMETYPE = "text/plain"

_entity_type_list = TypeAdapter(List[EntityType])
_registration_list = TypeAdapter(List[Registration])
_subscription_list = TypeAdapter(List[Subscription])
_string_list = TypeAdapter(List[str])
_json_value = TypeAdapter(Any)


def _decode_entity(body: bytes) -> Entity:
    return Entity.from_wire(json.loads(body))


def _decode_entities(body: bytes) -> List[Entity]:
    payload = json.loads(body)
    if not isinstance(payload, list):
        raise ValueError(f"expected a JSON array of entities, got {type(payload).__name__}")
    return [Entity.from_wire(item) for item in payload]


def _path(*segments: str) -> str:
    return "/v2/" + "/".join(quote(segment, safe="") for segment in segments)


def _type_param(entity_type: Optional[str]) -> QueryParams:
    return [("type", entity_type)] if entity_type else []


class Ngsi2Client:
    """
    NGSI v2 client (SYNC VERSION).

    Settings not passed explicitly come from config.get_app_config()
    (NGSI2_BROKER_URL, NGSI2_TIMEOUT_SECONDS, NGSI2_FIWARE_SERVICE,
    NGSI2_FIWARE_SERVICE_PATH).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize NGSI v2 client.

        Args:
            base_url: Broker base URL without the /v2 suffix
            timeout: Request timeout in seconds
            headers: Extra headers sent on every request
            transport: Custom httpx transport (e.g. httpx.MockTransport)

        Raises:
            ValueError: If no base_url provided and NGSI2_BROKER_URL not set
        """
        config = get_app_config()
        self.base_url = (base_url or config.ngsi2_broker_url).rstrip('/')
        if not self.base_url:
            raise ValueError(
                "Ngsi2Client requires base_url parameter or NGSI2_BROKER_URL environment variable"
            )
        if self.base_url.endswith("/v2"):
            self.base_url = self.base_url[:-3]
        self.timeout = timeout if timeout is not None else config.ngsi2_timeout_seconds
        self.headers = {
            "Content-Type": JSON_MIMETYPE,
            "Accept": JSON_MIMETYPE,
            **config.tenant_headers(),
            **(headers or {})
        }
        self.transport = transport
        self._client: Optional[httpx.Client] = None
        self.logger = LoggerFactory.create_logger(ComponentType.CLIENT, "Ngsi2Client")

    def _get_client(self) -> httpx.Client:
        """Get or create sync HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout),
                transport=self.transport
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "Ngsi2Client":
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ========================================================================
    # TRANSPORT
    # ========================================================================

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[QueryParams] = None,
        json_body: Any = None,
        content: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        client = self._get_client()
        try:
            response = client.request(
                method,
                path,
                params=params or None,
                json=json_body,
                content=content,
                headers=headers
            )
        except httpx.TimeoutException:
            self.logger.error(f"{method} {path} timed out after {self.timeout}s")
            raise
        except httpx.HTTPError as e:
            self.logger.error(f"{method} {path} failed: {e}")
            raise

        self.logger.debug(f"{method} {path} -> HTTP {response.status_code}")
        return response

    @staticmethod
    def _decode(response: httpx.Response, decoder=None) -> Ngsi2Response:
        return decode_response(
            response.status_code,
            response.reason_phrase,
            response.headers,
            response.content,
            decoder
        )

    @staticmethod
    def _decode_page(response: httpx.Response, decoder, offset: int, limit: int) -> Ngsi2Response:
        return decode_paginated(
            response.status_code,
            response.reason_phrase,
            response.headers,
            response.content,
            decoder,
            offset,
            limit
        )

    def _created(self, response: httpx.Response) -> Ngsi2Response:
        """Decode a 201, `data` being the id taken from the Location header."""
        result = self._decode(response)
        if result.success:
            result.data = location_id(response.headers)
        return result

    # ========================================================================
    # API ROOT
    # ========================================================================

    def get_v2(self) -> Ngsi2Response:
        """GET /v2 - resource URLs advertised by the broker."""
        response = self._request("GET", "/v2")
        return self._decode(response, _json_value.validate_json)

    # ========================================================================
    # ENTITIES
    # ========================================================================

    def get_entities(
        self,
        ids: Optional[Iterable[str]] = None,
        id_patterns: Optional[Iterable[str]] = None,
        types: Optional[Iterable[str]] = None,
        attrs: Optional[Iterable[str]] = None,
        query: Optional[str] = None,
        geo_query: Optional[GeoQuery] = None,
        order_by: Optional[Iterable[str]] = None,
        offset: int = 0,
        limit: int = 0,
        count: bool = False
    ) -> Ngsi2Response:
        """
        List entities.

        Args:
            ids / id_patterns / types / attrs: Filters (joined with ","; a
                single string is one value)
            query: Simple query expression
            geo_query: Spatial filter
            order_by: Ordering attributes, "!" prefix for descending
            offset: Pagination offset (omitted when 0)
            limit: Page size (omitted when 0)
            count: Ask for X-Total-Count

        Returns:
            Ngsi2Response with Paginated[Entity]
        """
        params = build_query_params(
            ids=ids,
            id_patterns=id_patterns,
            types=types,
            attrs=attrs,
            query=query,
            geo_query=geo_query,
            order_by=order_by,
            offset=offset,
            limit=limit,
            count=count
        )
        response = self._request("GET", "/v2/entities", params=params)
        return self._decode_page(response, _decode_entities, offset, limit)

    def add_entity(self, entity: Entity) -> Ngsi2Response:
        """POST /v2/entities; `data` is the new entity id from Location."""
        response = self._request("POST", "/v2/entities", json_body=entity.to_json())
        return self._created(response)

    def get_entity(self, entity_id: str, entity_type: Optional[str] = None,
                   attrs: Optional[Iterable[str]] = None) -> Ngsi2Response:
        params = _type_param(entity_type)
        attrs = list(attrs or [])
        if attrs:
            params.append(("attrs", ",".join(attrs)))
        response = self._request("GET", _path("entities", entity_id), params=params)
        return self._decode(response, _decode_entity)

    def update_entity(self, entity_id: str, entity_type: Optional[str],
                      attributes: Mapping[str, Attribute], append: bool = False) -> Ngsi2Response:
        """POST /v2/entities/{id} - update or append (only append with append=True)."""
        params = _type_param(entity_type)
        if append:
            params.append(("options", OPTION_APPEND))
        response = self._request("POST", _path("entities", entity_id), params=params,
                                 json_body=self._attributes_json(attributes))
        return self._decode(response)

    def update_existing_entity_attributes(self, entity_id: str, entity_type: Optional[str],
                                          attributes: Mapping[str, Attribute]) -> Ngsi2Response:
        response = self._request("PATCH", _path("entities", entity_id), params=_type_param(entity_type),
                                 json_body=self._attributes_json(attributes))
        return self._decode(response)

    def replace_entity(self, entity_id: str, entity_type: Optional[str],
                       attributes: Mapping[str, Attribute]) -> Ngsi2Response:
        response = self._request("PUT", _path("entities", entity_id), params=_type_param(entity_type),
                                 json_body=self._attributes_json(attributes))
        return self._decode(response)

    def delete_entity(self, entity_id: str, entity_type: Optional[str] = None) -> Ngsi2Response:
        response = self._request("DELETE", _path("entities", entity_id), params=_type_param(entity_type))
        return self._decode(response)

    @staticmethod
    def _attributes_json(attributes: Mapping[str, Attribute]) -> Dict[str, Any]:
        return {name: attribute.to_json() for name, attribute in attributes.items()}

    # ========================================================================
    # ATTRIBUTES
    # ========================================================================

    def get_attribute(self, entity_id: str, attr_name: str,
                      entity_type: Optional[str] = None) -> Ngsi2Response:
        response = self._request("GET", _path("entities", entity_id, "attrs", attr_name),
                                 params=_type_param(entity_type))
        return self._decode(response, lambda body: Attribute.model_validate_json(body))

    def update_attribute(self, entity_id: str, attr_name: str, attribute: Attribute,
                         entity_type: Optional[str] = None) -> Ngsi2Response:
        response = self._request("PUT", _path("entities", entity_id, "attrs", attr_name),
                                 params=_type_param(entity_type), json_body=attribute.to_json())
        return self._decode(response)

    def delete_attribute(self, entity_id: str, attr_name: str,
                         entity_type: Optional[str] = None) -> Ngsi2Response:
        response = self._request("DELETE", _path("entities", entity_id, "attrs", attr_name),
                                 params=_type_param(entity_type))
        return self._decode(response)

    def get_attribute_value(self, entity_id: str, attr_name: str,
                            entity_type: Optional[str] = None) -> Ngsi2Response:
        """Structured attribute value (object or array) as JSON."""
        response = self._request("GET", _path("entities", entity_id, "attrs", attr_name, "value"),
                                 params=_type_param(entity_type))
        return self._decode(response, _json_value.validate_json)

    def get_attribute_value_as_string(self, entity_id: str, attr_name: str,
                                      entity_type: Optional[str] = None) -> Ngsi2Response:
        """Attribute value in its text/plain form."""
        response = self._request("GET", _path("entities", entity_id, "attrs", attr_name, "value"),
                                 params=_type_param(entity_type), headers={"Accept": TEXT_MIMETYPE})
        return self._decode(response, lambda body: body.decode("utf-8") if isinstance(body, bytes) else body)

    def update_attribute_value(self, entity_id: str, attr_name: str, value: Any,
                               entity_type: Optional[str] = None) -> Ngsi2Response:
        """Structured values are sent as JSON, scalars as text/plain."""
        path = _path("entities", entity_id, "attrs", attr_name, "value")
        if isinstance(value, (dict, list)):
            response = self._request("PUT", path, params=_type_param(entity_type), json_body=value)
        else:
            response = self._request("PUT", path, params=_type_param(entity_type),
                                     content=value_to_text(value), headers={"Content-Type": TEXT_MIMETYPE})
        return self._decode(response)

    # ========================================================================
    # ENTITY TYPES
    # ========================================================================

    def get_entity_types(self, offset: int = 0, limit: int = 0, count: bool = False) -> Ngsi2Response:
        response = self._request("GET", "/v2/types", params=pagination_params(offset, limit, count))
        return self._decode_page(response, _entity_type_list.validate_json, offset, limit)

    def get_entity_type(self, entity_type: str) -> Ngsi2Response:
        response = self._request("GET", _path("types", entity_type))
        return self._decode(response, lambda body: EntityType.model_validate_json(body))

    # ========================================================================
    # REGISTRATIONS
    # ========================================================================

    def get_registrations(self) -> Ngsi2Response:
        response = self._request("GET", "/v2/registrations")
        return self._decode(response, _registration_list.validate_json)

    def add_registration(self, registration: Registration) -> Ngsi2Response:
        """POST /v2/registrations; `data` is the new registration id from Location."""
        response = self._request("POST", "/v2/registrations", json_body=registration.to_json())
        return self._created(response)

    def get_registration(self, registration_id: str) -> Ngsi2Response:
        response = self._request("GET", _path("registrations", registration_id))
        return self._decode(response, lambda body: Registration.model_validate_json(body))

    def update_registration(self, registration_id: str, registration: Registration) -> Ngsi2Response:
        response = self._request("PATCH", _path("registrations", registration_id),
                                 json_body=registration.to_json())
        return self._decode(response)

    def delete_registration(self, registration_id: str) -> Ngsi2Response:
        response = self._request("DELETE", _path("registrations", registration_id))
        return self._decode(response)

    # ========================================================================
    # SUBSCRIPTIONS
    # ========================================================================

    def get_subscriptions(self, offset: int = 0, limit: int = 0, count: bool = False) -> Ngsi2Response:
        response = self._request("GET", "/v2/subscriptions", params=pagination_params(offset, limit, count))
        return self._decode_page(response, _subscription_list.validate_json, offset, limit)

    def add_subscription(self, subscription: Subscription) -> Ngsi2Response:
        """POST /v2/subscriptions; `data` is the new subscription id from Location."""
        response = self._request("POST", "/v2/subscriptions", json_body=subscription.to_json())
        return self._created(response)

    def get_subscription(self, subscription_id: str) -> Ngsi2Response:
        response = self._request("GET", _path("subscriptions", subscription_id))
        return self._decode(response, lambda body: Subscription.model_validate_json(body))

    def update_subscription(self, subscription_id: str, subscription: Subscription) -> Ngsi2Response:
        response = self._request("PATCH", _path("subscriptions", subscription_id),
                                 json_body=subscription.to_json())
        return self._decode(response)

    def delete_subscription(self, subscription_id: str) -> Ngsi2Response:
        response = self._request("DELETE", _path("subscriptions", subscription_id))
        return self._decode(response)

    # ========================================================================
    # BATCH OPERATIONS
    # ========================================================================

    def bulk_update(self, request: BulkUpdateRequest) -> Ngsi2Response:
        response = self._request("POST", "/v2/op/update", json_body=request.to_json())
        return self._decode(response)

    def bulk_query(self, request: BulkQueryRequest, offset: int = 0, limit: int = 0,
                   count: bool = False) -> Ngsi2Response:
        response = self._request("POST", "/v2/op/query", params=pagination_params(offset, limit, count),
                                 json_body=request.to_json())
        return self._decode_page(response, _decode_entities, offset, limit)

    def bulk_register(self, request: BulkRegisterRequest) -> Ngsi2Response:
        """POST /v2/op/register; `data` is the list of registration ids."""
        response = self._request("POST", "/v2/op/register", json_body=request.to_json())
        return self._decode(response, _string_list.validate_json)

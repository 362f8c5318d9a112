# ============================================================================
# MODULE CONTEXT - NGSI v2 OPERATION HANDLERS
# ============================================================================
# STATUS: Standalone - NGSI v2 Function App
# PURPOSE: Registry of per-operation handlers supplied by a server implementation
# EXPORTS: Operation, Ngsi2HandlerRegistry, load_handlers
# DEPENDENCIES: importlib, ngsi2.exceptions
# PATTERNS: Strategy registry, decorator registration
# ENTRY_POINTS: registry.register(Operation.LIST_ENTITIES, handler)
# ============================================================================

"""
Operation handler registry.

Every NGSI v2 operation starts out bound to an "unsupported" handler that
raises UnsupportedOperationError (HTTP 501) naming the operation. A server
implementation replaces the operations it supports:

    registry = Ngsi2HandlerRegistry()

    @registry.handler(Operation.RETRIEVE_ENTITY)
    def retrieve_entity(entity_id, entity_type, attrs):
        ...

Handler signatures (positional arguments):

    LIST_RESOURCES()                                        -> Dict[str, str]
    LIST_ENTITIES(query: EntityQuery)                       -> Paginated[Entity]
    CREATE_ENTITY(entity: Entity)                           -> None
    RETRIEVE_ENTITY(entity_id, entity_type, attrs)          -> Entity
    UPDATE_OR_APPEND_ENTITY(entity_id, entity_type, attributes, append) -> None
    UPDATE_EXISTING_ENTITY_ATTRIBUTES(entity_id, entity_type, attributes) -> None
    REPLACE_ALL_ENTITY_ATTRIBUTES(entity_id, entity_type, attributes)     -> None
    REMOVE_ENTITY(entity_id, entity_type)                   -> None
    RETRIEVE_ENTITY_TYPES(offset, limit)                    -> Paginated[EntityType]
    RETRIEVE_ENTITY_TYPE(entity_type)                       -> EntityType
    RETRIEVE_ATTRIBUTE(entity_id, attr_name, entity_type)   -> Attribute
    UPDATE_ATTRIBUTE(entity_id, attr_name, entity_type, attribute) -> None
    REMOVE_ATTRIBUTE(entity_id, attr_name, entity_type)     -> None
    RETRIEVE_ATTRIBUTE_VALUE(entity_id, attr_name, entity_type) -> Any
    UPDATE_ATTRIBUTE_VALUE(entity_id, attr_name, entity_type, value) -> None
    LIST_REGISTRATIONS()                                    -> List[Registration]
    CREATE_REGISTRATION(registration)                       -> Optional[str] (new id)
    RETRIEVE_REGISTRATION(registration_id)                  -> Registration
    UPDATE_REGISTRATION(registration_id, registration)      -> None
    REMOVE_REGISTRATION(registration_id)                    -> None
    LIST_SUBSCRIPTIONS(offset, limit)                       -> Paginated[Subscription]
    CREATE_SUBSCRIPTION(subscription)                       -> Optional[str] (new id)
    RETRIEVE_SUBSCRIPTION(subscription_id)                  -> Subscription
    UPDATE_SUBSCRIPTION(subscription_id, subscription)      -> None
    REMOVE_SUBSCRIPTION(subscription_id)                    -> None
    BULK_UPDATE(request: BulkUpdateRequest)                 -> None
    BULK_QUERY(request: BulkQueryRequest, offset, limit)    -> Paginated[Entity]
"""

import importlib
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ngsi2.exceptions import UnsupportedOperationError

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Operation(Enum):
    """NGSI v2 operations; values are the names used in error messages."""
    LIST_RESOURCES = "Retrieve API Resources"
    LIST_ENTITIES = "List Entities"
    CREATE_ENTITY = "Create Entity"
    RETRIEVE_ENTITY = "Retrieve Entity"
    UPDATE_OR_APPEND_ENTITY = "Update Or Append Entity"
    UPDATE_EXISTING_ENTITY_ATTRIBUTES = "Update Existing Entity Attributes"
    REPLACE_ALL_ENTITY_ATTRIBUTES = "Replace All Entity Attributes"
    REMOVE_ENTITY = "Remove Entity"
    RETRIEVE_ENTITY_TYPES = "Retrieve Entity Types"
    RETRIEVE_ENTITY_TYPE = "Retrieve Entity Type"
    RETRIEVE_ATTRIBUTE = "Retrieve Attribute by Entity ID"
    UPDATE_ATTRIBUTE = "Update Attribute by Entity ID"
    REMOVE_ATTRIBUTE = "Remove Attribute"
    RETRIEVE_ATTRIBUTE_VALUE = "Retrieve Attribute Value"
    UPDATE_ATTRIBUTE_VALUE = "Update Attribute Value"
    LIST_REGISTRATIONS = "Retrieve Registrations"
    CREATE_REGISTRATION = "Create Registration"
    RETRIEVE_REGISTRATION = "Retrieve Registration"
    UPDATE_REGISTRATION = "Update Registration"
    REMOVE_REGISTRATION = "Remove Registration"
    LIST_SUBSCRIPTIONS = "Retrieve Subscriptions"
    CREATE_SUBSCRIPTION = "Create Subscription"
    RETRIEVE_SUBSCRIPTION = "Retrieve Subscription"
    UPDATE_SUBSCRIPTION = "Update Subscription"
    REMOVE_SUBSCRIPTION = "Remove Subscription"
    BULK_UPDATE = "Batch Update"
    BULK_QUERY = "Batch Query"


def unsupported_handler(operation: Operation) -> Handler:
    """Handler that answers 501 for `operation`."""
    def handler(*args, **kwargs):
        raise UnsupportedOperationError(operation.value)
    handler.unsupported = True
    handler.__name__ = f"unsupported_{operation.name.lower()}"
    return handler


class Ngsi2HandlerRegistry:
    """Maps each Operation to the callable implementing it."""

    def __init__(self):
        self._handlers: Dict[Operation, Handler] = {
            operation: unsupported_handler(operation) for operation in Operation
        }

    def register(self, operation: Operation, handler: Handler) -> Handler:
        logger.debug(f"Registering handler for {operation.value}")
        self._handlers[operation] = handler
        return handler

    def handler(self, operation: Operation) -> Callable[[Handler], Handler]:
        """Decorator form of `register`."""
        def decorator(func: Handler) -> Handler:
            return self.register(operation, func)
        return decorator

    def unregister(self, operation: Operation) -> None:
        self._handlers[operation] = unsupported_handler(operation)

    def get(self, operation: Operation) -> Handler:
        return self._handlers[operation]

    def is_supported(self, operation: Operation) -> bool:
        return not getattr(self._handlers[operation], "unsupported", False)

    def supported_operations(self) -> List[Operation]:
        return [operation for operation in Operation if self.is_supported(operation)]


def load_handlers(registry: Ngsi2HandlerRegistry, module_path: Optional[str]) -> Ngsi2HandlerRegistry:
    """
    Import `module_path` and call its `register(registry)`.

    Raises:
        ImportError: module cannot be imported
        AttributeError: module has no register function
    """
    if not module_path:
        logger.warning("No NGSI2_HANDLERS_MODULE configured - every operation answers 501")
        return registry

    module = importlib.import_module(module_path)
    register = getattr(module, "register", None)
    if not callable(register):
        raise AttributeError(f"{module_path} does not define register(registry)")
    register(registry)
    logger.info(f"✅ Loaded NGSI v2 handlers from {module_path}: "
                f"{[op.name for op in registry.supported_operations()]}")
    return registry

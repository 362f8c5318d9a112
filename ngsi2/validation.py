# ============================================================================
# MODULE CONTEXT - NGSI v2 REQUEST VALIDATION
# ============================================================================
# STATUS: Core - used by the Function App service
# PURPOSE: Field syntax checks and parameter compatibility on incoming requests
# EXPORTS: SyntaxValidator, check_incompatible, FIELD_PATTERN, MAX_FIELD_LENGTH
# DEPENDENCIES: ngsi2.models, ngsi2.subscriptions, ngsi2.exceptions
# PATTERNS: Collecting validator (all offenders reported at once)
# ENTRY_POINTS: SyntaxValidator().field_list(ids).field(entity_type).validate()
# ============================================================================

"""
Incoming request validation.

A field is valid when it is at most 256 characters long and only holds
letters, digits, "_" and "-". Joined list values are split on "," and each
element is checked on its own. Every offending value is collected so that a
single InvalidSyntaxError lists them all.
"""

import logging
import re
from typing import List, Mapping, Optional

from ngsi2.exceptions import IncompatibleParameterError, InvalidSyntaxError
from ngsi2.models import Attribute, Entity, Metadata
from ngsi2.subscriptions import Registration, SubjectEntity, Subscription

logger = logging.getLogger(__name__)

FIELD_PATTERN = re.compile(r"[a-zA-Z0-9_-]*")
MAX_FIELD_LENGTH = 256


def check_incompatible(name: str, value, other_name: str, other_value, operation: str) -> None:
    """Raise IncompatibleParameterError when both parameters are supplied."""
    if value is not None and other_value is not None:
        raise IncompatibleParameterError(name, other_name, operation)


class SyntaxValidator:
    """
    Collects invalid values across several checks.

    Example:
        SyntaxValidator().field_list(params.get("id")).field(entity_type).validate()
    """

    def __init__(self, max_length: int = MAX_FIELD_LENGTH):
        self.max_length = max_length
        self.invalid: List[str] = []

    def is_valid(self, value: str) -> bool:
        return len(value) <= self.max_length and FIELD_PATTERN.fullmatch(value) is not None

    def field(self, value: Optional[str]) -> "SyntaxValidator":
        if value is not None and not self.is_valid(value) and value not in self.invalid:
            self.invalid.append(value)
        return self

    def field_list(self, value: Optional[str]) -> "SyntaxValidator":
        """Check every element of a ","-joined list."""
        if value is not None:
            for item in value.split(","):
                self.field(item)
        return self

    def fields(self, values) -> "SyntaxValidator":
        for value in values or []:
            self.field(value)
        return self

    def metadata(self, metadata: Optional[Mapping[str, Metadata]]) -> "SyntaxValidator":
        for name, item in (metadata or {}).items():
            self.field(name)
            self.field(item.type)
        return self

    def attribute(self, attribute: Attribute) -> "SyntaxValidator":
        self.field(attribute.type)
        return self.metadata(attribute.metadata)

    def attributes(self, attributes: Mapping[str, Attribute]) -> "SyntaxValidator":
        for name, attribute in attributes.items():
            self.field(name)
            self.attribute(attribute)
        return self

    def entity(self, entity: Entity) -> "SyntaxValidator":
        self.field(entity.id)
        self.field(entity.type)
        return self.attributes(entity.attributes)

    def subject_entities(self, entities: List[SubjectEntity]) -> "SyntaxValidator":
        for item in entities or []:
            self.field(item.id)
            self.field(item.type)
        return self

    def registration(self, registration: Registration) -> "SyntaxValidator":
        if registration.subject is not None:
            self.subject_entities(registration.subject.entities)
            self.fields(registration.subject.attributes)
        return self.metadata(registration.metadata)

    def subscription(self, subscription: Subscription) -> "SyntaxValidator":
        if subscription.subject is not None:
            self.subject_entities(subscription.subject.entities)
            if subscription.subject.condition is not None:
                self.fields(subscription.subject.condition.attributes)
        if subscription.notification is not None:
            self.fields(subscription.notification.attributes)
        return self

    def validate(self) -> None:
        """
        Raises:
            InvalidSyntaxError: listing every invalid value collected so far
        """
        if self.invalid:
            logger.debug(f"Invalid syntax for {len(self.invalid)} value(s)")
            raise InvalidSyntaxError(self.invalid)

# ============================================================================
# MODULE CONTEXT - NGSI v2 SUBSCRIPTION / REGISTRATION / BATCH MODELS
# ============================================================================
# STATUS: Core Models - notification and batch payloads
# PURPOSE: Pydantic models for subscriptions, registrations and /v2/op batches
# EXPORTS: SubjectEntity, Condition, SubjectSubscription, Notification,
#          Subscription, Status, Format, SubjectRegistration, Registration,
#          Scope, UpdateAction, RegisterAction, BulkUpdateRequest,
#          BulkQueryRequest, BulkRegisterRequest
# DEPENDENCIES: pydantic, ngsi2.models
# PATTERNS: Data Transfer Objects (DTOs)
# ENTRY_POINTS: Subscription.model_validate(payload)
# ============================================================================

"""
Subscription, registration and batch operation payloads.

Optional fields are omitted from the wire when unset. Timestamps
(`expires`, `lastNotification`) are ISO 8601 with millisecond precision.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field, field_serializer

from ngsi2.models import Entity, Metadata, Ngsi2Model


def format_instant(value: Optional[datetime]) -> Optional[str]:
    """ISO 8601 with milliseconds, UTC rendered as `Z`."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
    return value.isoformat(timespec="milliseconds")


class Format(str, Enum):
    """Notification payload format."""
    NORMALIZED = "normalized"
    KEY_VALUES = "keyValues"
    VALUES = "values"


class Status(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    FAILED = "failed"


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================

class SubjectEntity(Ngsi2Model):
    """Entity selector: an id or an id pattern, optionally restricted by type."""
    id: Optional[str] = None
    idPattern: Optional[str] = None
    type: Optional[str] = None


class Condition(Ngsi2Model):
    """Attributes whose change triggers a notification, plus an optional filter expression."""
    attributes: Optional[List[str]] = None
    expression: Optional[Dict[str, str]] = None


class SubjectSubscription(Ngsi2Model):
    entities: List[SubjectEntity] = Field(default_factory=list)
    condition: Optional[Condition] = None


class Notification(Ngsi2Model):
    attributes: List[str] = Field(
        default_factory=list,
        description="Attributes included in notifications (empty means all)"
    )
    callback: Optional[str] = Field(default=None, description="Notification URL")
    headers: Optional[Dict[str, str]] = None
    query: Optional[Dict[str, str]] = None
    attrsFormat: Optional[Format] = None
    throttling: Optional[int] = Field(default=None, ge=0, description="Minimum seconds between notifications")
    timesSent: Optional[int] = Field(default=None, ge=0)
    lastNotification: Optional[datetime] = None

    @field_serializer("lastNotification")
    def serialize_last_notification(self, value: Optional[datetime]) -> Optional[str]:
        return format_instant(value)


class Subscription(Ngsi2Model):
    """
    NGSI v2 subscription.

    Every field is optional so the same shape serves creation, retrieval and
    partial updates.
    """
    id: Optional[str] = None
    description: Optional[str] = None
    subject: Optional[SubjectSubscription] = None
    notification: Optional[Notification] = None
    expires: Optional[datetime] = None
    status: Optional[Status] = None

    @field_serializer("expires")
    def serialize_expires(self, value: Optional[datetime]) -> Optional[str]:
        return format_instant(value)


# ============================================================================
# REGISTRATIONS
# ============================================================================

class SubjectRegistration(Ngsi2Model):
    entities: List[SubjectEntity] = Field(default_factory=list)
    attributes: List[str] = Field(default_factory=list)


class Registration(Ngsi2Model):
    """Context provider registration."""
    id: Optional[str] = None
    subject: Optional[SubjectRegistration] = None
    callback: Optional[str] = Field(default=None, description="Context provider URL")
    metadata: Optional[Dict[str, Metadata]] = None
    duration: Optional[str] = Field(default=None, description="ISO 8601 duration, e.g. PT1M")


# ============================================================================
# BATCH OPERATIONS (/v2/op/*)
# ============================================================================

class UpdateAction(str, Enum):
    APPEND = "APPEND"
    APPEND_STRICT = "APPEND_STRICT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class RegisterAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Scope(Ngsi2Model):
    type: str
    value: str


class BulkUpdateRequest(Ngsi2Model):
    actionType: UpdateAction
    entities: List[Entity] = Field(default_factory=list)


class BulkQueryRequest(Ngsi2Model):
    entities: List[SubjectEntity] = Field(default_factory=list)
    attributes: List[str] = Field(default_factory=list)
    scopes: List[Scope] = Field(default_factory=list)


class BulkRegisterRequest(Ngsi2Model):
    actionType: RegisterAction
    registrations: List[Registration] = Field(default_factory=list)

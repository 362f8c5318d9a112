# ============================================================================
# MODULE CONTEXT - NGSI v2 MODELS
# ============================================================================
# STATUS: Core Models - entity / attribute / geo / error shapes
# PURPOSE: Pydantic models for the NGSI v2 JSON dialect
# EXPORTS: Ngsi2Model, Metadata, Attribute, Entity, AttributeType, EntityType,
#          Coordinate, Relation, Modifier, Geometry, Georel, GeoQuery, Error,
#          Paginated
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: All classes in this file except Paginated
# DEPENDENCIES: pydantic, typing, dataclasses, enum
# SCOPE: Wire shapes shared by the broker client and the Function App
# VALIDATION: Pydantic v2 validation
# PATTERNS: Data Transfer Objects (DTOs)
# ENTRY_POINTS: from ngsi2.models import Entity, Attribute, GeoQuery
# ============================================================================

"""
NGSI v2 Pydantic Models

Wire rules implemented here:
- An entity is a flat object: "id", "type" and one key per attribute.
- An attribute is {"value", "type"?, "metadata"}: "type" is omitted when
  absent, "metadata" is always written (empty object when unset).
- Optional fields of the other shapes are omitted when absent.

Every model serializes with `to_json()`, which returns the wire dict.

Date: 18 OCT 2026
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_serializer,
    model_validator,
)

RESERVED_ENTITY_KEYS = ("id", "type")


class Ngsi2Model(BaseModel):
    """
    Base model for NGSI v2 shapes.

    Fields holding None are left out of the serialized form.
    """
    model_config = ConfigDict(populate_by_name=True)

    @model_serializer(mode="wrap")
    def ser_model(self, handler):
        data = handler(self)
        return {k: v for k, v in data.items() if v is not None}

    def to_json(self) -> Dict[str, Any]:
        """Wire representation (JSON-compatible dict)."""
        return self.model_dump(mode="json")


# ============================================================================
# ENTITY / ATTRIBUTE / METADATA
# ============================================================================

class Metadata(Ngsi2Model):
    """Metadata attached to an attribute (one level, no nested metadata)."""
    value: Any = Field(
        default=None,
        description="Metadata value (any JSON value)"
    )
    type: Optional[str] = Field(
        default=None,
        description="Optional metadata type tag"
    )

    @model_serializer(mode="wrap")
    def ser_model(self, handler):
        data = handler(self)
        out = {"value": data.get("value")}
        if self.type is not None:
            out["type"] = self.type
        return out


class Attribute(Ngsi2Model):
    """
    Entity attribute.

    `value` is required on the wire; `metadata` is never absent.
    """
    value: Any = Field(
        description="Attribute value (boolean, number, string, null or structure)"
    )
    type: Optional[str] = Field(
        default=None,
        description="Optional attribute type tag"
    )
    metadata: Dict[str, Metadata] = Field(
        default_factory=dict,
        description="Metadata by name"
    )

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v):
        return {} if v is None else v

    @model_serializer(mode="wrap")
    def ser_model(self, handler):
        data = handler(self)
        out = {"value": data.get("value")}
        if self.type is not None:
            out["type"] = self.type
        out["metadata"] = data.get("metadata") or {}
        return out


class Entity(Ngsi2Model):
    """
    NGSI v2 entity: id, type and an open set of attributes.

    Built in Python with `attributes={...}`; decoded from the wire with
    `Entity.from_wire(payload)` (or `model_validate`, which routes every key
    other than id/type into the attribute map).
    """
    id: str = Field(
        min_length=1,
        description="Entity identifier"
    )
    type: Optional[str] = Field(
        default=None,
        description="Entity type"
    )
    attributes: Dict[str, Attribute] = Field(
        default_factory=dict,
        description="Attributes by name"
    )

    @model_validator(mode="before")
    @classmethod
    def collect_attributes(cls, data):
        if not isinstance(data, dict):
            return data
        extra = {k: v for k, v in data.items() if k not in RESERVED_ENTITY_KEYS + ("attributes",)}
        if not extra:
            return data
        routed = {k: data[k] for k in RESERVED_ENTITY_KEYS if k in data}
        attributes = dict(data.get("attributes") or {})
        attributes.update(extra)
        routed["attributes"] = attributes
        return routed

    @field_validator("attributes")
    @classmethod
    def validate_attribute_names(cls, v: Dict[str, Attribute]) -> Dict[str, Attribute]:
        clashing = [name for name in v if name in RESERVED_ENTITY_KEYS]
        if clashing:
            raise ValueError(f"attribute names must not be {', '.join(clashing)}")
        return v

    @model_serializer(mode="wrap")
    def ser_model(self, handler):
        data = handler(self)
        out = {"id": data["id"]}
        if self.type is not None:
            out["type"] = data["type"]
        out.update(data.get("attributes") or {})
        return out

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "Entity":
        """
        Decode a flat wire object.

        Every key other than "id" and "type" is an attribute name, including
        a key literally named "attributes".
        """
        if not isinstance(payload, dict):
            raise TypeError(f"entity payload must be an object, got {type(payload).__name__}")
        data = {k: payload[k] for k in RESERVED_ENTITY_KEYS if k in payload}
        data["attributes"] = {k: v for k, v in payload.items() if k not in RESERVED_ENTITY_KEYS}
        return cls.model_validate(data)

    def to_key_values(self) -> Dict[str, Any]:
        """Simplified `keyValues` representation (attribute name -> value)."""
        out = {"id": self.id}
        if self.type is not None:
            out["type"] = self.type
        for name, attribute in self.attributes.items():
            out[name] = attribute.value
        return out

    def to_values(self, attrs: Optional[List[str]] = None) -> List[Any]:
        """Simplified `values` representation, ordered by `attrs` when given."""
        names = attrs if attrs else list(self.attributes)
        return [self.attributes[name].value for name in names if name in self.attributes]


class AttributeType(Ngsi2Model):
    """Attribute type summary returned by the types endpoints."""
    type: str = Field(description="Attribute type name")


class EntityType(Ngsi2Model):
    """Entity type summary: attribute types and number of entities."""
    type: Optional[str] = Field(
        default=None,
        description="Entity type name (present in listings)"
    )
    attrs: Dict[str, AttributeType] = Field(
        default_factory=dict,
        description="Attribute types by attribute name"
    )
    count: int = Field(
        default=0,
        ge=0,
        description="Number of entities of this type"
    )


# ============================================================================
# GEO QUERY
# ============================================================================

class Relation(str, Enum):
    """Spatial relationship of a geo-query."""
    NEAR = "near"
    COVERED_BY = "coveredBy"
    INTERSECTS = "intersects"
    EQUALS = "equals"
    DISJOINT = "disjoint"


class Modifier(str, Enum):
    """Distance modifier, only meaningful with `near`."""
    MAX_DISTANCE = "maxDistance"
    MIN_DISTANCE = "minDistance"


class Geometry(str, Enum):
    """Reference geometry of a geo-query."""
    POINT = "point"
    LINE = "line"
    POLYGON = "polygon"
    BOX = "box"


class Coordinate(Ngsi2Model):
    """Latitude/longitude pair."""
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


def _check_distance_modifier(relation: Relation, modifier: Optional[Modifier], distance: Optional[float]) -> None:
    if relation is Relation.NEAR:
        if modifier is None or distance is None:
            raise ValueError("near requires a modifier and a distance")
    elif modifier is not None or distance is not None:
        raise ValueError(f"{relation.value} does not take a modifier or a distance")


class Georel(Ngsi2Model):
    """
    The `georel` request parameter.

    Rendered as `near;maxDistance:1000.0` or just the relation name.
    """
    relation: Relation
    modifier: Optional[Modifier] = None
    distance: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_modifier(self) -> "Georel":
        _check_distance_modifier(self.relation, self.modifier, self.distance)
        return self

    def to_param(self) -> str:
        if self.relation is Relation.NEAR:
            return f"{self.relation.value};{self.modifier.value}:{self.distance}"
        return self.relation.value

    def __str__(self) -> str:
        return self.to_param()


class GeoQuery(Ngsi2Model):
    """
    Structured spatial filter.

    `modifier`/`distance` are present exactly when the relation is `near`.
    """
    relation: Relation
    geometry: Geometry
    coordinates: List[Coordinate] = Field(min_length=1)
    modifier: Optional[Modifier] = None
    distance: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_modifier(self) -> "GeoQuery":
        _check_distance_modifier(self.relation, self.modifier, self.distance)
        return self

    @property
    def georel(self) -> Georel:
        return Georel(relation=self.relation, modifier=self.modifier, distance=self.distance)

    @property
    def coords(self) -> str:
        """Coordinates as `lat,lon;lat,lon`."""
        return ";".join(f"{c.latitude},{c.longitude}" for c in self.coordinates)

    def to_query_params(self) -> Dict[str, str]:
        return {
            "georel": self.georel.to_param(),
            "geometry": self.geometry.value,
            "coords": self.coords
        }


# ============================================================================
# ERROR / PAGINATION
# ============================================================================

class Error(Ngsi2Model):
    """
    NGSI v2 error payload.

    `description` and `affectedItems` are omitted when absent.
    """
    error: str = Field(description="Error code")
    description: Optional[str] = Field(
        default=None,
        description="Human readable description"
    )
    affectedItems: Optional[List[str]] = Field(
        default=None,
        description="Identifiers of the offending items"
    )

    def __str__(self) -> str:
        items = ", ".join(self.affectedItems or [])
        return f"error: {self.error} | description: {self.description or ''} | affectedItems: [{items}]"


T = TypeVar("T")


@dataclass
class Paginated(Generic[T]):
    """
    A page of results.

    `total` comes from the X-Total-Count header and defaults to 0.
    """
    items: List[T] = field(default_factory=list)
    offset: int = 0
    limit: int = 0
    total: int = 0

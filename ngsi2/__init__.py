# ============================================================================
# MODULE CONTEXT - NGSI v2 CORE
# ============================================================================
# STATUS: Core Module - shared by the broker client and the Function App
# PURPOSE: NGSI v2 data model, parsers, query encoding, decoding, validation
# EXPORTS: Entity, Attribute, Metadata, GeoQuery, Error, Paginated,
#          Ngsi2Error (and kinds), parse_geo_query, EntityQuery,
#          Ngsi2Response, SyntaxValidator
# INTERFACES: Pure functions and Pydantic models, no I/O
# DEPENDENCIES: pydantic
# PATTERNS: DTOs, pure parsing/encoding
# ENTRY_POINTS: from ngsi2 import Entity, parse_geo_query
# ============================================================================

"""
NGSI v2 Core

Everything in this package is synchronous and free of I/O; the httpx client
(services/ngsi2_client.py) and the Azure Functions triggers (ngsi2_api/) are
the only places that touch the network.

Architecture:
    ngsi2/
    ├── models.py         # Entity / Attribute / GeoQuery / Error models
    ├── subscriptions.py  # Subscriptions, registrations, batch payloads
    ├── exceptions.py     # Error taxonomy
    ├── parsing.py        # georel/geometry/coords and text/plain values
    ├── query.py          # Query parameter builder
    ├── decoding.py       # Response decoding (success / typed error)
    └── validation.py     # Incoming request validation

Date: 18 OCT 2026
"""

from .models import (
    Attribute,
    AttributeType,
    Coordinate,
    Entity,
    EntityType,
    Error,
    Geometry,
    GeoQuery,
    Georel,
    Metadata,
    Modifier,
    Paginated,
    Relation,
)
from .exceptions import (
    BadRequestError,
    ConflictingEntitiesError,
    IncompatibleParameterError,
    InternalError,
    InvalidSyntaxError,
    Ngsi2Error,
    NotAcceptableError,
    UnsupportedOperationError,
    UnsupportedOptionError,
)
from .parsing import parse_coordinates, parse_geo_query, parse_geometry
from .query import EntityQuery, build_query_params
from .decoding import Ngsi2Response, decode_response, read_total_count
from .validation import SyntaxValidator

__version__ = "1.0.0"
__all__ = [
    "Attribute",
    "AttributeType",
    "Coordinate",
    "Entity",
    "EntityType",
    "Error",
    "Geometry",
    "GeoQuery",
    "Georel",
    "Metadata",
    "Modifier",
    "Paginated",
    "Relation",
    "BadRequestError",
    "ConflictingEntitiesError",
    "IncompatibleParameterError",
    "InternalError",
    "InvalidSyntaxError",
    "Ngsi2Error",
    "NotAcceptableError",
    "UnsupportedOperationError",
    "UnsupportedOptionError",
    "parse_coordinates",
    "parse_geo_query",
    "parse_geometry",
    "EntityQuery",
    "build_query_params",
    "Ngsi2Response",
    "decode_response",
    "read_total_count",
    "SyntaxValidator",
]

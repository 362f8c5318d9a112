# ============================================================================
# MODULE CONTEXT - NGSI v2 PARAMETER PARSING
# ============================================================================
# STATUS: Core - used by the Function App service
# PURPOSE: Parse the geo-query request parameters and text/plain values
# EXPORTS: parse_geo_query, parse_geometry, parse_coordinates,
#          parse_text_value, value_to_text
# DEPENDENCIES: ngsi2.models, ngsi2.exceptions
# PATTERNS: Pure functions, fail-fast with a single typed error
# ENTRY_POINTS: parse_geo_query("near;maxDistance:1000", "point", "40.4,-3.7")
# ============================================================================

"""
Geo-query mini-language and text/plain attribute values.

Geo-query parameters (as received on the request):
    georel    near;maxDistance:1000 | coveredBy | intersects | equals | disjoint
    geometry  point | line | polygon | box
    coords    lat,lon;lat,lon...   (";" and "," both separate tokens)

Checks run in the order relation -> modifier/distance -> geometry -> coords
and the first failure raises InvalidSyntaxError naming the offending input.
Relations other than `near` ignore any further `;` segments.
"""

import json
import logging
import math
import re
from typing import Any, List

from ngsi2.exceptions import InvalidSyntaxError, NotAcceptableError
from ngsi2.models import Coordinate, Geometry, GeoQuery, Modifier, Relation

logger = logging.getLogger(__name__)

COORDS_SEPARATOR = re.compile(r"\s*(?:;|,)\s*")
COORDS_ITEM = "coords"


def _split(value: str, separator) -> List[str]:
    """Split and drop trailing empty tokens."""
    if isinstance(separator, str):
        tokens = value.split(separator)
    else:
        tokens = separator.split(value)
    while tokens and tokens[-1] == "":
        tokens.pop()
    return tokens


def _to_float(token: str) -> float:
    if "_" in token:
        raise ValueError(f"invalid number: {token}")
    return float(token)


def _parse_distance(segment: str):
    parts = segment.split(":")
    if len(parts) != 2:
        raise InvalidSyntaxError(segment)
    try:
        modifier = Modifier(parts[0])
        distance = _to_float(parts[1])
    except ValueError:
        raise InvalidSyntaxError(segment) from None
    if not math.isfinite(distance) or distance < 0:
        raise InvalidSyntaxError(segment)
    return modifier, distance


def parse_geometry(geometry: str) -> Geometry:
    try:
        return Geometry(geometry)
    except ValueError:
        raise InvalidSyntaxError(geometry) from None


def parse_coordinates(coords: str) -> List[Coordinate]:
    """
    Parse `lat,lon;lat,lon` into coordinates, in input order.

    Raises:
        InvalidSyntaxError: citing "coords" when the list is empty, has an odd
            number of tokens or a token is not a number
    """
    tokens = _split(coords or "", COORDS_SEPARATOR)
    if not tokens or len(tokens) % 2 != 0:
        raise InvalidSyntaxError(COORDS_ITEM)
    try:
        numbers = [_to_float(token) for token in tokens]
    except ValueError:
        raise InvalidSyntaxError(COORDS_ITEM) from None
    if not all(math.isfinite(n) for n in numbers):
        raise InvalidSyntaxError(COORDS_ITEM)
    return [
        Coordinate(latitude=numbers[i], longitude=numbers[i + 1])
        for i in range(0, len(numbers), 2)
    ]


def parse_geo_query(georel: str, geometry: str, coords: str) -> GeoQuery:
    """
    Parse the three geo-query request parameters.

    Args:
        georel: Spatial relation, e.g. "near;maxDistance:1000" or "coveredBy"
        geometry: Reference geometry name
        coords: Flat coordinate list

    Returns:
        Fully populated GeoQuery

    Raises:
        InvalidSyntaxError: First offending input (relation segment, modifier
            segment, geometry string or "coords")
    """
    segments = _split(georel or "", ";")
    head = segments[0] if segments else ""
    try:
        relation = Relation(head)
    except ValueError:
        logger.debug(f"Unknown georel relation: {head!r}")
        raise InvalidSyntaxError(head) from None

    modifier = distance = None
    if relation is Relation.NEAR:
        if len(segments) < 2:
            raise InvalidSyntaxError(georel)
        modifier, distance = _parse_distance(segments[1])

    parsed_geometry = parse_geometry(geometry)
    coordinates = parse_coordinates(coords)

    return GeoQuery(
        relation=relation,
        modifier=modifier,
        distance=distance,
        geometry=parsed_geometry,
        coordinates=coordinates
    )


# ============================================================================
# TEXT/PLAIN ATTRIBUTE VALUES
# ============================================================================

def parse_text_value(text: str) -> Any:
    """
    Parse a text/plain attribute value.

    Accepted forms: true, false, null (any case), a double-quoted string
    (quotes removed), an integer, a float.

    Raises:
        NotAcceptableError: for any other text
    """
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    if len(text) > 1 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    if "_" not in text:
        try:
            return int(text)
        except ValueError:
            pass
        try:
            value = float(text)
            if math.isfinite(value):
                return value
        except ValueError:
            pass
    raise NotAcceptableError()


def value_to_text(value: Any) -> str:
    """Render an attribute value as text/plain (JSON for structured values)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    return json.dumps(value)

# ============================================================================
# MODULE CONTEXT - NGSI v2 QUERY PARAMETERS
# ============================================================================
# STATUS: Core - used by the broker client and the Function App service
# PURPOSE: Encode entity filters / pagination into ordered query parameters
# EXPORTS: EntityQuery, build_query_params, pagination_params, join_values
# DEPENDENCIES: pydantic, ngsi2.models
# PATTERNS: Parameter object (pydantic), pure encoder
# ENTRY_POINTS: EntityQuery(types=["Room"], limit=10).to_params()
# ============================================================================

"""
Query parameter builder for the entity listing endpoint.

Parameters are emitted in this order:
    id, idPattern, type, attrs, query, georel, geometry, coords, orderBy,
    offset, limit, options

Empty lists are left out, lists are joined with ",", offset/limit only
appear when greater than zero. The builder never checks that parameters are
compatible with each other (that is the serving side's job).
"""

from typing import Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from ngsi2.models import GeoQuery

QueryParams = List[Tuple[str, str]]

OPTION_COUNT = "count"
OPTION_KEY_VALUES = "keyValues"
OPTION_VALUES = "values"
OPTION_APPEND = "append"


def join_values(values: Union[None, str, Iterable]) -> Optional[str]:
    """Join a list parameter with ","; None for an empty list."""
    if values is None:
        return None
    if isinstance(values, str):
        return values or None
    items = [str(v) for v in values]
    return ",".join(items) if items else None


def pagination_params(offset: int = 0, limit: int = 0, count: bool = False,
                      options: Optional[Iterable[str]] = None) -> QueryParams:
    """offset / limit / options parameters shared by every list endpoint."""
    params: QueryParams = []
    if offset and offset > 0:
        params.append(("offset", str(offset)))
    if limit and limit > 0:
        params.append(("limit", str(limit)))
    all_options = [OPTION_COUNT] if count else []
    all_options.extend(o for o in (options or []) if o not in all_options)
    if all_options:
        params.append(("options", ",".join(all_options)))
    return params


class EntityQuery(BaseModel):
    """
    Filter criteria of a List Entities request.

    Used by the client to build the outbound query string and by the
    Function App to hand validated criteria to the registered handler.
    """
    ids: List[str] = Field(default_factory=list, description="Entity ids")
    id_patterns: List[str] = Field(default_factory=list, description="Entity id regular expressions")
    types: List[str] = Field(default_factory=list, description="Entity types")
    attrs: List[str] = Field(default_factory=list, description="Attributes to return")
    query: Optional[str] = Field(default=None, description="Free-form simple query")
    geo_query: Optional[GeoQuery] = Field(default=None, description="Spatial filter")
    order_by: List[str] = Field(default_factory=list, description="Ordering attributes (! for descending)")
    offset: int = Field(default=0, description="Pagination offset")
    limit: int = Field(default=0, description="Page size")
    count: bool = Field(default=False, description="Ask for X-Total-Count")
    options: List[str] = Field(default_factory=list, description="Extra options (keyValues, values)")

    def to_params(self) -> QueryParams:
        """Ordered (name, value) pairs for the query string."""
        params: QueryParams = []
        for name, values in (
            ("id", self.ids),
            ("idPattern", self.id_patterns),
            ("type", self.types),
            ("attrs", self.attrs),
        ):
            joined = join_values(values)
            if joined:
                params.append((name, joined))

        if self.query:
            params.append(("query", self.query))

        if self.geo_query is not None:
            params.extend(self.geo_query.to_query_params().items())

        order_by = join_values(self.order_by)
        if order_by:
            params.append(("orderBy", order_by))

        params.extend(pagination_params(self.offset, self.limit, self.count, self.options))
        return params


def build_query_params(
    ids: Optional[Iterable[str]] = None,
    id_patterns: Optional[Iterable[str]] = None,
    types: Optional[Iterable[str]] = None,
    attrs: Optional[Iterable[str]] = None,
    query: Optional[str] = None,
    geo_query: Optional[GeoQuery] = None,
    order_by: Optional[Iterable[str]] = None,
    offset: int = 0,
    limit: int = 0,
    count: bool = False,
    options: Optional[Iterable[str]] = None
) -> QueryParams:
    """Functional form of `EntityQuery(...).to_params()`; strings count as one-element lists."""
    def as_list(values):
        if values is None:
            return []
        if isinstance(values, str):
            return [values] if values else []
        return list(values)

    return EntityQuery(
        ids=as_list(ids),
        id_patterns=as_list(id_patterns),
        types=as_list(types),
        attrs=as_list(attrs),
        query=query,
        geo_query=geo_query,
        order_by=as_list(order_by),
        offset=offset,
        limit=limit,
        count=count,
        options=as_list(options)
    ).to_params()

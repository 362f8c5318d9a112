# ============================================================================
# MODULE CONTEXT - NGSI v2 RESPONSE DECODING
# ============================================================================
# STATUS: Core - used by the broker client
# PURPOSE: Classify broker responses into typed results or typed errors
# EXPORTS: Ngsi2Response, decode_response, decode_paginated, decode_error,
#          error_for_status, read_total_count, location_id
# DEPENDENCIES: pydantic, ngsi2.models, ngsi2.exceptions
# PATTERNS: Result object (success / data / error), pure decoding
# ENTRY_POINTS: decode_response(status, reason, headers, body, decoder)
# ============================================================================

"""
Response decoding.

Decoding works on a completed exchange (status code, reason phrase, headers,
body bytes) and never performs I/O.

- 2xx/3xx: the body goes through the supplied decoder. Decoder failures
  (pydantic ValidationError, ValueError) propagate to the caller.
- 4xx/5xx: the body is parsed as an NGSI `Error` and mapped to an error kind
  by status. When the body is not an `Error`, a generic error is built from
  the status code and reason phrase alone.
- X-Total-Count is read leniently: missing or non-numeric means 0.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Mapping, Optional, TypeVar, Union

from pydantic import ValidationError

from ngsi2.exceptions import (
    BadRequestError,
    ConflictingEntitiesError,
    InternalError,
    InvalidSyntaxError,
    Ngsi2Error,
    NotAcceptableError,
    UnsupportedOperationError,
)
from ngsi2.models import Error, Paginated

logger = logging.getLogger(__name__)

TOTAL_COUNT_HEADER = "X-Total-Count"
TOTAL_COUNT_PATTERN = re.compile(r"[+-]?[0-9]+")

ERROR_KINDS_BY_STATUS = {
    400: BadRequestError,
    406: NotAcceptableError,
    409: ConflictingEntitiesError,
    500: InternalError,
    501: UnsupportedOperationError,
}

T = TypeVar("T")
Body = Union[bytes, str]


@dataclass
class Ngsi2Response(Generic[T]):
    """
    Result of a broker call.

    Exactly one of `data` / `error` is meaningful, as told by `success`.
    """
    success: bool
    status_code: int
    data: Optional[T] = None
    error: Optional[Ngsi2Error] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def unwrap(self) -> T:
        """Return `data`, raising the decoded error on failure."""
        if not self.success:
            raise self.error
        return self.data


def is_error_status(status_code: int) -> bool:
    return 400 <= status_code < 600


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def read_total_count(headers: Mapping[str, str]) -> int:
    """X-Total-Count as int; 0 when absent or not a plain ASCII integer."""
    raw = _header(headers, TOTAL_COUNT_HEADER)
    if raw is None or not TOTAL_COUNT_PATTERN.fullmatch(raw.strip()):
        return 0
    return int(raw)


def location_id(headers: Mapping[str, str]) -> Optional[str]:
    """Last path segment of the Location header (id of a created resource), query string dropped."""
    location = _header(headers, "Location")
    if not location:
        return None
    path = location.split("?", 1)[0].rstrip("/")
    return path.rsplit("/", 1)[-1] or None


def error_for_status(status_code: int, error: Error) -> Ngsi2Error:
    """Map a decoded `Error` to the error kind of its HTTP status."""
    if status_code == 400 and error.affectedItems:
        kind = InvalidSyntaxError
    else:
        kind = ERROR_KINDS_BY_STATUS.get(status_code, Ngsi2Error)
    return kind.from_error(error, status_code=status_code)


def decode_error(status_code: int, reason_phrase: str, body: Body) -> Ngsi2Error:
    """
    Decode a failed response body.

    Returns:
        The error kind for the status, or a generic Ngsi2Error carrying only
        the status code and reason phrase when the body is not an `Error`
    """
    try:
        error = Error.model_validate_json(body)
    except ValidationError:
        logger.debug(f"Unparseable error body for HTTP {status_code}, using status text")
        return Ngsi2Error(str(status_code), reason_phrase, status_code=status_code)
    return error_for_status(status_code, error)


def decode_response(
    status_code: int,
    reason_phrase: str,
    headers: Mapping[str, str],
    body: Body,
    decoder: Optional[Callable[[Body], T]] = None
) -> Ngsi2Response[T]:
    """
    Classify a completed exchange.

    Args:
        status_code: HTTP status
        reason_phrase: HTTP status text (fallback error description)
        headers: Response headers
        body: Raw response body
        decoder: Body decoder for the success path (None for empty responses)

    Returns:
        Ngsi2Response with either data or error set
    """
    plain_headers = dict(headers.items())
    if is_error_status(status_code):
        return Ngsi2Response(
            success=False,
            status_code=status_code,
            error=decode_error(status_code, reason_phrase, body),
            headers=plain_headers
        )
    data = decoder(body) if decoder is not None else None
    return Ngsi2Response(success=True, status_code=status_code, data=data, headers=plain_headers)


def decode_paginated(
    status_code: int,
    reason_phrase: str,
    headers: Mapping[str, str],
    body: Body,
    decoder: Callable[[Body], list],
    offset: int = 0,
    limit: int = 0
) -> Ngsi2Response[Paginated]:
    """Like decode_response, wrapping the decoded list with its pagination window."""
    result = decode_response(status_code, reason_phrase, headers, body, decoder)
    if result.success:
        result.data = Paginated(
            items=result.data or [],
            offset=offset,
            limit=limit,
            total=read_total_count(headers)
        )
    return result

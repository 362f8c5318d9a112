# ============================================================================
# MODULE CONTEXT - NGSI v2 ERROR TAXONOMY
# ============================================================================
# STATUS: Core - shared by client decoding and the Function App service
# PURPOSE: Exception hierarchy mirroring the NGSI v2 error kinds
# EXPORTS: Ngsi2Error, BadRequestError, IncompatibleParameterError,
#          InvalidSyntaxError, NotAcceptableError, ConflictingEntitiesError,
#          InternalError, UnsupportedOperationError, UnsupportedOptionError
# DEPENDENCIES: ngsi2.models (Error)
# PATTERNS: Exception hierarchy with HTTP status per kind
# ENTRY_POINTS: raise InvalidSyntaxError(["bad id"]); err.to_error()
# ============================================================================

"""
NGSI v2 error kinds.

Every kind carries the NGSI `error` code, a `description`, optional
`affected_items` and the HTTP status it maps to. `to_error()` produces the
wire `Error` payload; `from_error()` rebuilds a kind from a broker payload
without reformatting its description.
"""

from typing import Iterable, Optional, Union

from ngsi2.models import Error


class Ngsi2Error(Exception):
    """Base NGSI v2 error (also the generic kind for unmapped statuses)."""

    status_code: int = 500

    def __init__(
        self,
        error: str,
        description: Optional[str] = None,
        affected_items: Optional[Iterable[str]] = None,
        status_code: Optional[int] = None
    ):
        self.error = error
        self.description = description
        self.affected_items = list(affected_items) if affected_items is not None else None
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def message(self) -> str:
        items = ", ".join(self.affected_items or [])
        return f"error: {self.error} | description: {self.description} | affectedItems: [{items}]"

    def to_error(self) -> Error:
        return Error(
            error=self.error,
            description=self.description,
            affectedItems=self.affected_items
        )

    @classmethod
    def from_error(cls, error: Error, status_code: Optional[int] = None) -> "Ngsi2Error":
        """Build this kind from a decoded `Error`, keeping its fields as sent."""
        instance = cls.__new__(cls)
        Ngsi2Error.__init__(
            instance,
            error.error,
            error.description,
            error.affectedItems,
            status_code
        )
        return instance


class BadRequestError(Ngsi2Error):
    status_code = 400

    def __init__(self, message: str):
        super().__init__("400", f"Bad request: {message}")


class IncompatibleParameterError(Ngsi2Error):
    """Two request parameters that must not be combined."""
    status_code = 400

    def __init__(self, parameter: str, other_parameter: str, operation: str):
        super().__init__(
            "400",
            f"The incoming request is invalid in this context. The parameter {parameter} "
            f"is incompatible with {other_parameter} in {operation} operation."
        )


class InvalidSyntaxError(Ngsi2Error):
    """Request values with forbidden characters or length; lists every offender."""
    status_code = 400

    def __init__(self, affected_items: Union[str, Iterable[str]]):
        if isinstance(affected_items, str):
            affected_items = [affected_items]
        super().__init__("400", "Syntax invalid", affected_items)


class NotAcceptableError(Ngsi2Error):
    status_code = 406

    def __init__(self):
        super().__init__("406", "Not Acceptable: Accepted MIME types: text/plain.")


class ConflictingEntitiesError(Ngsi2Error):
    """Several entities match; `suggested_request` narrows the lookup."""
    status_code = 409

    def __init__(self, entity_id: str, suggested_request: str):
        self.entity_id = entity_id
        self.suggested_request = suggested_request
        super().__init__(
            "409",
            f"Too many results. There are several results that match with the {entity_id} "
            f"used in the request. Instead of, you can use {suggested_request}"
        )


class InternalError(Ngsi2Error):
    status_code = 500

    def __init__(self, message: str):
        super().__init__("500", f"Internal Error: {message}.")


class UnsupportedOperationError(Ngsi2Error):
    status_code = 501

    def __init__(self, operation: str):
        super().__init__("501", f"this operation '{operation}' is not implemented")


class UnsupportedOptionError(Ngsi2Error):
    status_code = 501

    def __init__(self, option: str):
        super().__init__("501", f"Unsupported option value: {option}")

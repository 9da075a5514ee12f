"""
Domain errors raised by the services.

The API layer maps every BestelError to a JSON response with the status
code carried by the exception class. Storage errors are not wrapped and
surface as 500 responses.
"""

from typing import Any, Optional


class BestelError(Exception):
    """Base class for errors that are reported to the caller."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(BestelError):
    """Malformed input: unknown product id, empty table number, bad price."""

    status_code = 400


class AuthenticationError(BestelError):
    """Missing or invalid session token."""

    status_code = 401


class PermissionDeniedError(BestelError):
    """Valid session without the required role."""

    status_code = 403


class NotFoundError(BestelError):
    """Missing system, table, bar or order."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[Any] = None, detail: Optional[str] = None):
        if detail is None:
            if entity_id is not None:
                detail = f"{entity} {entity_id} not found"
            else:
                detail = f"{entity} not found"
        super().__init__(detail)
        self.entity = entity
        self.entity_id = entity_id

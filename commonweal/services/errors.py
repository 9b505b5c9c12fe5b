"""
commonweal.services.errors — Domain Exceptions
===============================================

Services raise these; :mod:`commonweal.api.errors` maps each one to an
HTTP status.  Every exception carries a short human-readable message that
is safe to return to the client.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for expected, client-facing failures."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(ServiceError):
    """A business rule rejected the request (already attending, event full…)."""

    status_code = 400


class NotOwner(ServiceError):
    """A valid user tried to change an initiative/event they don't own."""

    status_code = 401


class Forbidden(ServiceError):
    """A valid user lacks the role or relationship the operation needs."""

    status_code = 403


class NotFound(ServiceError):
    """The referenced entity does not exist (or its id is malformed)."""

    status_code = 404


def parse_id(raw: str | int, label: str) -> int:
    """Parse a path/body identifier, treating malformed ids as *not found*."""
    if isinstance(raw, int):
        return raw
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise NotFound(f"{label} not found") from None
    if value <= 0:
        raise NotFound(f"{label} not found")
    return value

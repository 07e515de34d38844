"""Base domain error kinds shared by every module.

Modules subclass these so the API layer can translate whole families
of failures into HTTP responses without knowing every concrete error.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from django.db import DatabaseError


class DomainError(Exception):
    """Root of all errors raised by the service layer."""


class NotFound(DomainError):
    """A referenced entity could not be resolved."""


class InvalidInput(DomainError):
    """A caller-supplied value is outside its allowed domain."""


class InvalidState(DomainError):
    """The entity is in a state that does not allow the operation."""


class Conflict(DomainError):
    """A concurrent modification was detected by the store."""


class DependencyFailure(DomainError):
    """A store or adapter call failed; the cause is chained."""


@contextmanager
def translate_database_errors(operation: str) -> Iterator[None]:
    """Re-raise ``DatabaseError`` as ``DependencyFailure``.

    The original exception stays available as ``__cause__``.
    """
    try:
        yield
    except DatabaseError as exc:
        raise DependencyFailure(f"{operation} failed: {exc}") from exc

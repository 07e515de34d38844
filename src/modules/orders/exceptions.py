"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches the base kinds from
``modules.core.exceptions`` and translates them into HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import (
    Conflict,
    InvalidInput,
    InvalidState,
    NotFound,
)


class OrderNotFound(NotFound):
    """The requested order does not exist."""


class InvalidOrderStatus(InvalidInput):
    """The value is not a member of the order status enumeration."""


class InvalidPaymentStatus(InvalidInput):
    """The value is not a member of the payment status enumeration."""


class InvalidQuery(InvalidInput):
    """List or stats parameters failed validation."""


class InvalidPipeline(InvalidInput):
    """A stage sequence violates the pipeline ordering rules."""


class InvalidOrderTransition(InvalidState):
    """The order cannot move from its current status to the requested one."""


class OrderNotDeletable(InvalidState):
    """Only pending or cancelled orders can be deleted."""


class OrderConflict(Conflict):
    """The order was modified concurrently since it was loaded."""

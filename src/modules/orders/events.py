"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised after every order status transition."""

    old_status: str = ""
    new_status: str = ""
    notes: str = ""
    restock_failures: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class OrderPaymentUpdated(DomainEvent):
    """Raised after every payment status update."""

    old_payment_status: str = ""
    new_payment_status: str = ""
    transaction_id: Optional[str] = None
    notes: str = ""


@dataclass(frozen=True)
class OrderDeleted(DomainEvent):
    """Raised after an order is permanently removed."""

    order_number: str = ""
    previous_status: str = ""
    restock_failures: List[Dict[str, Any]] = field(default_factory=list)

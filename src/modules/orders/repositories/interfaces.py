"""Order repository interface (the store adapter).

Extends ``IRepository[Order]`` with pipeline execution for list, count
and aggregate reads, and with the locking/history operations the
lifecycle service needs.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional, Sequence
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory
    from modules.orders.pipeline import Stage


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def execute_query(self, stages: Sequence[Stage]) -> List[Order]:
        """Run a record-returning pipeline (no terminal stage)."""

    @abstractmethod
    def execute_count(self, stages: Sequence[Stage]) -> int:
        """Run a pipeline whose last stage is ``Count``."""

    @abstractmethod
    def execute_aggregate(self, stages: Sequence[Stage]) -> Any:
        """Run a pipeline ending in an aggregate stage.

        ``SumTotalPrice`` -> ``Decimal``; ``CountByStatus`` ->
        ``dict[str, int]``; ``DailySales`` -> list of dicts with ``day``
        (a ``date``), ``total_sales`` and ``order_count``.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with buyer, items and history eager-loaded."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock and its items loaded."""

    @abstractmethod
    def save(self, entity: Order) -> Order:
        """Persist lifecycle fields; raise ``OrderConflict`` on version mismatch."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        old_status: Optional[str],
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

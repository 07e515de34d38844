"""Inventory repository interface.

The order lifecycle only needs to give stock back; reservation happens
at checkout, outside this engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from uuid import UUID


class IInventoryRepository(ABC):
    """Repository contract for product stock counters."""

    @abstractmethod
    def increment_stock(self, product_id: UUID, amount: int) -> bool:
        """Return ``amount`` units to the product's available stock.

        Returns ``False`` when the product does not exist.  Store errors
        are raised as ``DependencyFailure``.
        """

"""Django ORM implementation of the inventory repository.

Stock counters are updated with ``F()`` expressions so concurrent
restocks of the same product never lose an increment.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest

from modules.core.exceptions import translate_database_errors
from modules.products.models import Product
from modules.products.repositories.interfaces import IInventoryRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IInventoryRepository):
    """Concrete inventory repository backed by Django ORM."""

    def increment_stock(self, product_id: UUID, amount: int) -> bool:
        """Add ``amount`` to ``stock_quantity`` and take it off ``sold_count``.

        Runs in its own savepoint so a failure leaves the caller's
        transaction usable.  Non-positive amounts are a no-op success.
        """
        if amount <= 0:
            return True

        with translate_database_errors("increment_stock"):
            with transaction.atomic():
                updated = Product.objects.filter(id=product_id).update(
                    stock_quantity=F("stock_quantity") + amount,
                    sold_count=Greatest(F("sold_count") - amount, Value(0)),
                )

        if not updated:
            logger.warning("product.restock_missing", product_id=str(product_id))
            return False

        logger.info("product.restocked", product_id=str(product_id), amount=amount)
        return True

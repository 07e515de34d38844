"""Order lifecycle service layer (Use Cases).

Applies administrator-driven changes to a single order: status
transitions, payment status updates and deletion.  Every command runs in
one database transaction and follows the same steps: validate input,
load the order under a row lock, validate the current state, apply side
effects (stock compensation), persist, record history, emit an event.

Business rules enforced:
- Status and payment status values belong to their closed enumerations;
  bad values are rejected before the order is loaded.
- Entering ``delivered`` stamps the delivery; leaving it clears the stamp.
- Entering ``cancelled`` returns every line item's quantity to stock,
  once.  A cancelled order cannot be reopened.
- Payment ``completed`` stamps the payment; any other payment status
  clears it, so ``is_paid`` holds exactly when payment is completed.
- Only ``pending`` or ``cancelled`` orders can be deleted; stock is
  returned first unless the order was already cancelled.

Stock compensation is best-effort per line item: a failed restock does
not block the status change.  It is logged, returned to the caller,
flagged on the order with ``compensation_pending`` and carried in the
emitted event so it can be reconciled.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.exceptions import DependencyFailure
from modules.orders.cache import invalidate_order
from modules.orders.constants import (
    DELETABLE_STATES,
    OrderStatus,
    PaymentStatus,
)
from modules.orders.dtos import (
    OrderDeletion,
    PaymentUpdateResult,
    RestockFailureDTO,
    StatusUpdateResult,
)
from modules.orders.events import OrderDeleted, OrderPaymentUpdated, OrderStatusChanged
from modules.orders.exceptions import (
    InvalidOrderStatus,
    InvalidOrderTransition,
    InvalidPaymentStatus,
    OrderNotDeletable,
    OrderNotFound,
)

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IInventoryRepository
    from shared.domain.bus import IEventSink
    from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class OrderLifecycleService:
    """Application service for order lifecycle commands.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        inventory_repository: IInventoryRepository,
        event_sink: IEventSink,
    ) -> None:
        self._order_repo = order_repository
        self._inventory = inventory_repository
        self._events = event_sink

    # ------------------------------------------------------------------
    # Order status
    # ------------------------------------------------------------------

    @transaction.atomic
    def transition_status(
        self,
        order_id: UUID,
        new_status: str,
        notes: str = "",
    ) -> StatusUpdateResult:
        """Move an order to ``new_status`` and apply its side effects.

        Raises:
            InvalidOrderStatus: ``new_status`` is not an order status.
            OrderNotFound: order does not exist.
            InvalidOrderTransition: the order is cancelled and
                ``new_status`` is not ``cancelled``.
            OrderConflict: the order changed concurrently.
        """
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus(
                f"Invalid status {new_status!r}. Valid statuses are: "
                f"{', '.join(OrderStatus.values)}."
            )

        order = self._load_for_update(order_id)
        old_status = order.status
        log = logger.bind(
            order_id=str(order.id), old_status=old_status, new_status=new_status
        )

        if old_status == OrderStatus.CANCELLED and new_status != OrderStatus.CANCELLED:
            log.warning("order.reopen_rejected")
            raise InvalidOrderTransition(
                f"Order {order.id} is cancelled and cannot move to {new_status}."
            )

        order.status = new_status
        if new_status == OrderStatus.DELIVERED:
            order.is_delivered = True
            order.delivered_at = timezone.now()
        elif old_status == OrderStatus.DELIVERED:
            order.is_delivered = False
            order.delivered_at = None

        failures: List[RestockFailureDTO] = []
        if new_status == OrderStatus.CANCELLED and old_status != OrderStatus.CANCELLED:
            failures = self._restock(order)
            if failures:
                order.compensation_pending = True

        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            new_status=new_status,
            old_status=old_status,
            notes=notes,
        )
        transaction.on_commit(partial(invalidate_order, order.id))

        log.info("order.status_updated", restock_failures=len(failures))
        self._emit(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=old_status,
                new_status=new_status,
                notes=notes,
                restock_failures=[f.model_dump(mode="json") for f in failures],
            )
        )
        return StatusUpdateResult(
            id=order.id,
            status=order.status,
            is_delivered=order.is_delivered,
            delivered_at=order.delivered_at,
            compensation_pending=order.compensation_pending,
            restock_failures=failures,
        )

    # ------------------------------------------------------------------
    # Payment status
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_payment(
        self,
        order_id: UUID,
        payment_status: str,
        transaction_id: Optional[str] = None,
        notes: str = "",
    ) -> PaymentUpdateResult:
        """Set the payment status and keep ``is_paid``/``paid_at`` consistent.

        Raises:
            InvalidPaymentStatus: ``payment_status`` is not a payment status.
            OrderNotFound: order does not exist.
            OrderConflict: the order changed concurrently.
        """
        if payment_status not in PaymentStatus.values:
            raise InvalidPaymentStatus(
                f"Invalid payment status {payment_status!r}. Valid statuses are: "
                f"{', '.join(PaymentStatus.values)}."
            )

        order = self._load_for_update(order_id)
        old_payment_status = order.payment_status

        order.payment_status = payment_status
        if payment_status == PaymentStatus.COMPLETED:
            order.is_paid = True
            order.paid_at = timezone.now()
            if transaction_id:
                order.transaction_id = transaction_id
        else:
            order.is_paid = False
            order.paid_at = None

        self._order_repo.save(order)
        transaction.on_commit(partial(invalidate_order, order.id))

        logger.info(
            "order.payment_updated",
            order_id=str(order.id),
            old_payment_status=old_payment_status,
            new_payment_status=payment_status,
        )
        self._emit(
            OrderPaymentUpdated(
                aggregate_id=order.id,
                old_payment_status=old_payment_status,
                new_payment_status=payment_status,
                transaction_id=transaction_id,
                notes=notes,
            )
        )
        return PaymentUpdateResult(
            id=order.id,
            payment_status=order.payment_status,
            is_paid=order.is_paid,
            paid_at=order.paid_at,
            transaction_id=order.transaction_id,
        )

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    @transaction.atomic
    def delete_order(self, order_id: UUID) -> OrderDeletion:
        """Permanently remove a pending or cancelled order.

        Raises:
            OrderNotFound: order does not exist.
            OrderNotDeletable: the order is neither pending nor cancelled.
        """
        order = self._load_for_update(order_id)
        previous_status = order.status
        log = logger.bind(order_id=str(order.id), status=previous_status)

        if previous_status not in DELETABLE_STATES:
            log.warning("order.delete_not_allowed")
            raise OrderNotDeletable(
                f"Only pending or cancelled orders can be deleted "
                f"(order {order.id} is {previous_status})."
            )

        failures: List[RestockFailureDTO] = []
        if previous_status != OrderStatus.CANCELLED:
            failures = self._restock(order)

        self._order_repo.delete(str(order.id))
        transaction.on_commit(partial(invalidate_order, order.id))

        log.info("order.deleted_by_admin", restock_failures=len(failures))
        self._emit(
            OrderDeleted(
                aggregate_id=order.id,
                order_number=order.order_number,
                previous_status=previous_status,
                restock_failures=[f.model_dump(mode="json") for f in failures],
            )
        )
        return OrderDeletion(
            id=order.id,
            previous_status=previous_status,
            restock_failures=failures,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_for_update(self, order_id: UUID) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _restock(self, order: Order) -> List[RestockFailureDTO]:
        """Return each line item's quantity to stock, in product-id order."""
        failures: List[RestockFailureDTO] = []
        items = sorted(order.items.all(), key=lambda item: str(item.product_id))
        for item in items:
            log = logger.bind(
                order_id=str(order.id),
                product_id=str(item.product_id),
                quantity=item.quantity,
            )
            try:
                restored = self._inventory.increment_stock(item.product_id, item.quantity)
            except DependencyFailure as exc:
                log.error("order.restock_failed", error=str(exc))
                failures.append(
                    RestockFailureDTO(
                        product_id=item.product_id,
                        quantity=item.quantity,
                        reason=str(exc),
                    )
                )
                continue

            if not restored:
                log.error("order.restock_failed", error="product not found")
                failures.append(
                    RestockFailureDTO(
                        product_id=item.product_id,
                        quantity=item.quantity,
                        reason="product not found",
                    )
                )
                continue
            log.info("order.stock_released")
        return failures

    def _emit(self, event: DomainEvent) -> None:
        try:
            self._events.emit(event.event_name, event.to_payload())
        except Exception:
            logger.warning(
                "order.event_emit_failed",
                event_name=event.event_name,
                order_id=str(event.aggregate_id),
                exc_info=True,
            )

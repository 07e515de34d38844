"""Event handlers for Orders domain events relayed from the outbox."""

from __future__ import annotations

from typing import Any, Dict

import structlog

logger = structlog.get_logger(__name__)


class OrderStatusChangedHandler:
    def handle(self, payload: Dict[str, Any]) -> None:
        logger.info(
            "business.order_status_updated",
            order_id=payload.get("aggregate_id"),
            old_status=payload.get("old_status"),
            new_status=payload.get("new_status"),
            notes=payload.get("notes"),
        )


class OrderPaymentUpdatedHandler:
    def handle(self, payload: Dict[str, Any]) -> None:
        logger.info(
            "business.order_payment_updated",
            order_id=payload.get("aggregate_id"),
            old_payment_status=payload.get("old_payment_status"),
            new_payment_status=payload.get("new_payment_status"),
            transaction_id=payload.get("transaction_id"),
        )


class OrderDeletedHandler:
    def handle(self, payload: Dict[str, Any]) -> None:
        logger.info(
            "business.order_deleted",
            order_id=payload.get("aggregate_id"),
            order_number=payload.get("order_number"),
            previous_status=payload.get("previous_status"),
        )


class CompensationAlertHandler:
    """Surface restock failures that left stock unreturned."""

    def handle(self, payload: Dict[str, Any]) -> None:
        failures = payload.get("restock_failures") or []
        if not failures:
            return
        logger.error(
            "order.compensation_pending",
            order_id=payload.get("aggregate_id"),
            failed_items=len(failures),
            product_ids=[failure.get("product_id") for failure in failures],
        )


order_status_changed_handler = OrderStatusChangedHandler()
order_payment_updated_handler = OrderPaymentUpdatedHandler()
order_deleted_handler = OrderDeletedHandler()
compensation_alert_handler = CompensationAlertHandler()

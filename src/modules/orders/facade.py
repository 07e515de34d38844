"""Admin entry point for order administration.

``AdminOrderFacade`` is the single object the HTTP layer talks to.  It
validates list requests, runs the page and count pipelines, serves the
cached order detail and delegates commands to the lifecycle and
reporting services.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import UUID

import structlog
from django.conf import settings

from modules.core.sinks import OutboxEventSink
from modules.orders.cache import get_cached_detail, store_detail
from modules.orders.dtos import (
    OrderDeletion,
    OrderDetailDTO,
    OrderListItemDTO,
    OrderPage,
    OrderQuerySpec,
    OrderStats,
    PaginationEnvelope,
    PaymentUpdateResult,
    StatusUpdateResult,
)
from modules.orders.exceptions import OrderNotFound
from modules.orders.pipeline import OrderPipelineBuilder
from modules.orders.reporting import OrderReportingService
from modules.orders.services import OrderLifecycleService

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class AdminOrderFacade:
    def __init__(
        self,
        order_repository: IOrderRepository,
        lifecycle_service: OrderLifecycleService,
        reporting_service: OrderReportingService,
        pipeline_builder: Optional[OrderPipelineBuilder] = None,
        cache_seconds: Optional[int] = None,
    ) -> None:
        self._order_repo = order_repository
        self._lifecycle = lifecycle_service
        self._reporting = reporting_service
        self._builder = pipeline_builder or OrderPipelineBuilder()
        if cache_seconds is None:
            cache_seconds = settings.ORDERS_DETAIL_CACHE_SECONDS
        self._cache_seconds = cache_seconds

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_orders(self, spec: OrderQuerySpec) -> OrderPage:
        """Return one page of orders plus pagination metadata.

        The page and the total come from pipelines built over the same
        filter prefix, so ``total_orders`` counts exactly what the pages
        walk through.
        """
        orders = self._order_repo.execute_query(self._builder.build(spec))
        total = self._order_repo.execute_count(self._builder.build_count(spec))

        page = OrderPage(
            items=[OrderListItemDTO.from_entity(order) for order in orders],
            pagination=PaginationEnvelope.build(spec.page, spec.limit, total),
        )
        logger.info(
            "order.list_served",
            page=spec.page,
            limit=spec.limit,
            returned=len(page.items),
            total=total,
            search=bool(spec.search),
        )
        return page

    def get_order(self, order_id: UUID) -> OrderDetailDTO:
        """Retrieve the order detail, from cache when available.

        Raises:
            OrderNotFound: order does not exist.
        """
        cached = get_cached_detail(order_id)
        if cached is not None:
            logger.debug("order.detail_cache_hit", order_id=str(order_id))
            return OrderDetailDTO.model_validate(cached)

        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        detail = OrderDetailDTO.from_entity(order)
        if self._cache_seconds > 0:
            store_detail(order_id, detail.model_dump(mode="json"), self._cache_seconds)
        return detail

    def get_stats(self, period_days: Optional[int] = None) -> OrderStats:
        if period_days is None:
            period_days = settings.ORDERS_DEFAULT_STATS_PERIOD_DAYS
        return self._reporting.summarize(period_days)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def transition_status(
        self, order_id: UUID, new_status: str, notes: str = ""
    ) -> StatusUpdateResult:
        return self._lifecycle.transition_status(order_id, new_status, notes=notes)

    def update_payment(
        self,
        order_id: UUID,
        payment_status: str,
        transaction_id: Optional[str] = None,
        notes: str = "",
    ) -> PaymentUpdateResult:
        return self._lifecycle.update_payment(
            order_id, payment_status, transaction_id=transaction_id, notes=notes
        )

    def delete_order(self, order_id: UUID) -> OrderDeletion:
        return self._lifecycle.delete_order(order_id)


def build_admin_order_facade() -> AdminOrderFacade:
    """Wire the facade with the Django ORM repositories and the outbox sink."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.products.repositories.django_repository import ProductDjangoRepository

    order_repository = OrderDjangoRepository()
    return AdminOrderFacade(
        order_repository=order_repository,
        lifecycle_service=OrderLifecycleService(
            order_repository=order_repository,
            inventory_repository=ProductDjangoRepository(),
            event_sink=OutboxEventSink(),
        ),
        reporting_service=OrderReportingService(order_repository),
    )

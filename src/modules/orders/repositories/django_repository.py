"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` by translating pipeline stages into
QuerySet operations.  Every pipeline is validated before it touches the
database; ``Skip``/``Limit`` become a single slice applied after all
filters and the sort.

Concurrency control on lifecycle writes combines ``select_for_update()``
(where the backend supports row locks) with a conditional update on
``version`` so a stale write is reported instead of silently lost.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Count as CountExpr
from django.db.models import F, Q, Sum, Value
from django.db.models.functions import Cast, Coalesce, NullIf, TruncDate
from django.utils import timezone

from modules.core.exceptions import translate_database_errors
from modules.orders.constants import GUEST_BUYER_NAME, SortDirection
from modules.orders.exceptions import InvalidPipeline, OrderConflict
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.pipeline import (
    AGGREGATE_STAGES,
    TERMINAL_STAGES,
    Count,
    CountByStatus,
    DailySales,
    FilterByFields,
    FilterBySearch,
    JoinBuyer,
    Limit,
    Skip,
    Sort,
    Stage,
    SumTotalPrice,
    validate_pipeline,
)
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

LIFECYCLE_FIELDS = (
    "status",
    "payment_status",
    "is_paid",
    "paid_at",
    "is_delivered",
    "delivered_at",
    "transaction_id",
    "compensation_pending",
)

SEARCH_FIELDS = (
    "order_ref",
    "order_number",
    "buyer_name",
    "buyer_email",
    "buyer_phone",
    "shipping_name",
    "shipping_phone",
)


# ---------------------------------------------------------------------------
# Stage appliers
# ---------------------------------------------------------------------------


def _join_buyer(queryset: models.QuerySet, stage: JoinBuyer) -> models.QuerySet:
    text = models.CharField()
    return queryset.select_related("customer").annotate(
        buyer_name=Coalesce(
            "customer__name",
            NullIf("guest_name", Value("")),
            Value(GUEST_BUYER_NAME),
            output_field=text,
        ),
        buyer_email=Coalesce("customer__email", "guest_email", Value(""), output_field=text),
        buyer_phone=Coalesce("customer__phone", "guest_phone", Value(""), output_field=text),
        order_ref=Cast("id", output_field=text),
    )


def _filter_by_search(queryset: models.QuerySet, stage: FilterBySearch) -> models.QuerySet:
    condition = Q()
    for field in SEARCH_FIELDS:
        condition |= Q(**{f"{field}__icontains": stage.term})
    # Some backends store UUIDs without hyphens.
    compact = stage.term.replace("-", "")
    if compact and compact != stage.term:
        condition |= Q(order_ref__icontains=compact)
    return queryset.filter(condition)


def _filter_by_fields(queryset: models.QuerySet, stage: FilterByFields) -> models.QuerySet:
    lookups: Dict[str, Any] = {}
    if stage.status is not None:
        lookups["status"] = stage.status
    if stage.payment_status is not None:
        lookups["payment_status"] = stage.payment_status
    if stage.created_from is not None:
        lookups["created_at__gte"] = stage.created_from
    if stage.created_to is not None:
        lookups["created_at__lte"] = stage.created_to
    return queryset.filter(**lookups)


def _sort(queryset: models.QuerySet, stage: Sort) -> models.QuerySet:
    prefix = "-" if stage.direction == SortDirection.DESC else ""
    return queryset.order_by(f"{prefix}{stage.field}", "-id")


_APPLIERS: Dict[type, Callable[[models.QuerySet, Any], models.QuerySet]] = {
    JoinBuyer: _join_buyer,
    FilterBySearch: _filter_by_search,
    FilterByFields: _filter_by_fields,
    Sort: _sort,
}


# Some backends (SQLite) drop the scale of summed decimals.
CENTS = Decimal("0.01")


def _money(value: Any) -> Decimal:
    return Decimal(value or 0).quantize(CENTS)


def _sum_total_price(queryset: models.QuerySet, stage: SumTotalPrice) -> Decimal:
    result = queryset.aggregate(
        total=Coalesce(
            Sum("total_price"),
            Value(Decimal("0.00")),
            output_field=models.DecimalField(max_digits=14, decimal_places=2),
        )
    )
    return _money(result["total"])


def _count_by_status(queryset: models.QuerySet, stage: CountByStatus) -> Dict[str, int]:
    rows = queryset.order_by().values_list("status").annotate(total=CountExpr("id"))
    return {status: total for status, total in rows}


def _daily_sales(queryset: models.QuerySet, stage: DailySales) -> List[Dict[str, Any]]:
    rows = (
        queryset.order_by()
        .annotate(day=TruncDate("created_at", tzinfo=ZoneInfo(stage.time_zone)))
        .values("day")
        .annotate(total_sales=Sum("total_price"), order_count=CountExpr("id"))
        .order_by("day")
    )
    return [{**row, "total_sales": _money(row["total_sales"])} for row in rows]


_AGGREGATORS: Dict[type, Callable[[models.QuerySet, Any], Any]] = {
    SumTotalPrice: _sum_total_price,
    CountByStatus: _count_by_status,
    DailySales: _daily_sales,
}


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    def execute_query(self, stages: Sequence[Stage]) -> List[Order]:
        validate_pipeline(stages)
        if stages and isinstance(stages[-1], TERMINAL_STAGES):
            raise InvalidPipeline("execute_query does not accept a terminal stage.")
        with translate_database_errors("execute_query"):
            return list(self._build_queryset(stages))

    def execute_count(self, stages: Sequence[Stage]) -> int:
        validate_pipeline(stages)
        if not stages or not isinstance(stages[-1], Count):
            raise InvalidPipeline("execute_count requires a trailing Count stage.")
        with translate_database_errors("execute_count"):
            return self._build_queryset(stages[:-1]).count()

    def execute_aggregate(self, stages: Sequence[Stage]) -> Any:
        validate_pipeline(stages)
        if not stages or not isinstance(stages[-1], AGGREGATE_STAGES):
            raise InvalidPipeline("execute_aggregate requires a trailing aggregate stage.")
        if any(isinstance(stage, (Sort, Skip, Limit)) for stage in stages):
            raise InvalidPipeline("Aggregate pipelines cannot sort or paginate.")

        terminal = stages[-1]
        queryset = self._build_queryset(stages[:-1])
        with translate_database_errors("execute_aggregate"):
            return _AGGREGATORS[type(terminal)](queryset, terminal)

    def _build_queryset(self, stages: Sequence[Stage]) -> models.QuerySet:
        queryset = Order.objects.all()
        offset = 0
        limit: Optional[int] = None
        for stage in stages:
            if isinstance(stage, Skip):
                offset = stage.count
            elif isinstance(stage, Limit):
                limit = stage.count
            else:
                queryset = _APPLIERS[type(stage)](queryset, stage)

        if limit is not None:
            return queryset[offset : offset + limit]
        if offset:
            return queryset[offset:]
        return queryset

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the customer FK and
        ``prefetch_related`` for items, items->product and status history.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            with translate_database_errors("get_by_id"):
                return (
                    Order.objects.select_related("customer")
                    .prefetch_related("items__product", "status_history")
                    .filter(id=id)
                    .first()
                )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside ``transaction.atomic``.  Items are loaded so
        the caller can compensate stock while the row is locked.
        """
        try:
            with translate_database_errors("get_for_update"):
                return (
                    Order.objects.select_for_update()
                    .prefetch_related("items")
                    .filter(id=id)
                    .first()
                )
        except (ValueError, ValidationError):
            return None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Write the lifecycle fields if ``version`` is still current."""
        now = timezone.now()
        values = {field: getattr(entity, field) for field in LIFECYCLE_FIELDS}
        with translate_database_errors("save"):
            updated = Order.objects.filter(pk=entity.pk, version=entity.version).update(
                version=F("version") + 1,
                updated_at=now,
                **values,
            )
        if not updated:
            logger.warning(
                "order.version_conflict",
                order_id=str(entity.pk),
                expected_version=entity.version,
            )
            raise OrderConflict(f"Order {entity.pk} was modified concurrently.")

        entity.version += 1
        entity.updated_at = now
        logger.info("order.saved", order_id=str(entity.pk), version=entity.version)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Hard-delete an order; items and history cascade."""
        with translate_database_errors("delete"):
            _, per_model = Order.objects.filter(id=id).delete()
        deleted = per_model.get(Order._meta.label, 0) > 0
        if deleted:
            logger.info("order.deleted", order_id=str(id))
        return deleted

    @transaction.atomic
    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        old_status: Optional[str],
        notes: str = "",
    ) -> OrderStatusHistory:
        with translate_database_errors("add_history"):
            history = OrderStatusHistory.objects.create(
                order_id=order_id,
                old_status=old_status,
                new_status=new_status,
                notes=notes,
            )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
        )
        return history

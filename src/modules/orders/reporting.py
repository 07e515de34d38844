"""Dashboard statistics for the admin order views.

Every figure is computed by the store through an aggregate pipeline;
nothing is summed in Python.  Windowed figures cover
``[now - period_days, now]``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Dict, List, Optional

import structlog
from django.conf import settings
from django.utils import timezone

from modules.orders.constants import OrderSortField, OrderStatus, PaymentStatus, SortDirection
from modules.orders.dtos import DailySalesDTO, OrderStats, RecentOrderDTO
from modules.orders.exceptions import InvalidQuery
from modules.orders.pipeline import (
    Count,
    CountByStatus,
    DailySales,
    FilterByFields,
    JoinBuyer,
    Limit,
    Sort,
    SumTotalPrice,
)

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderReportingService:
    def __init__(
        self,
        order_repository: IOrderRepository,
        time_zone: Optional[str] = None,
        recent_limit: Optional[int] = None,
    ) -> None:
        self._order_repo = order_repository
        self._time_zone = time_zone or settings.ORDERS_REPORTING_TIME_ZONE
        self._recent_limit = recent_limit or settings.ORDERS_RECENT_ORDERS_LIMIT

    def summarize(self, period_days: int) -> OrderStats:
        """Build the statistics summary for the last ``period_days`` days.

        Raises:
            InvalidQuery: ``period_days`` is not a positive integer.
        """
        if isinstance(period_days, bool) or not isinstance(period_days, int) or period_days < 1:
            raise InvalidQuery("period must be a positive number of days.")

        now = timezone.now()
        since = now - timedelta(days=period_days)
        completed = PaymentStatus.COMPLETED

        total_orders = self._order_repo.execute_count([Count()])
        total_revenue = self._order_repo.execute_aggregate(
            [FilterByFields(payment_status=completed), SumTotalPrice()]
        )
        period_revenue = self._order_repo.execute_aggregate(
            [
                FilterByFields(payment_status=completed, created_from=since, created_to=now),
                SumTotalPrice(),
            ]
        )

        stats = OrderStats(
            period_days=period_days,
            total_orders=total_orders,
            total_revenue=total_revenue,
            period_revenue=period_revenue,
            status_breakdown=self._status_breakdown(),
            recent_orders=self._recent_orders(since, now),
            daily_sales=self._daily_sales(since, now),
        )
        logger.info(
            "order.stats_computed",
            period_days=period_days,
            total_orders=total_orders,
            time_zone=self._time_zone,
        )
        return stats

    def _status_breakdown(self) -> Dict[str, int]:
        counts = self._order_repo.execute_aggregate([CountByStatus()])
        return {status: counts.get(status, 0) for status in OrderStatus.values}

    def _recent_orders(self, since, now) -> List[RecentOrderDTO]:
        orders = self._order_repo.execute_query(
            [
                JoinBuyer(),
                FilterByFields(created_from=since, created_to=now),
                Sort(field=OrderSortField.CREATED_AT, direction=SortDirection.DESC),
                Limit(count=self._recent_limit),
            ]
        )
        return [RecentOrderDTO.from_entity(order) for order in orders]

    def _daily_sales(self, since, now) -> List[DailySalesDTO]:
        rows = self._order_repo.execute_aggregate(
            [
                FilterByFields(
                    payment_status=PaymentStatus.COMPLETED,
                    created_from=since,
                    created_to=now,
                ),
                DailySales(time_zone=self._time_zone),
            ]
        )
        return [
            DailySalesDTO(
                year=row["day"].year,
                month=row["day"].month,
                day=row["day"].day,
                sales_date=row["day"],
                total_sales=row["total_sales"],
                order_count=row["order_count"],
            )
            for row in rows
        ]

"""Order retrieval pipelines.

A pipeline is an ordered list of stages drawn from a fixed vocabulary.
The builder turns a validated ``OrderQuerySpec`` into two pipelines that
share one filter prefix:

- the page pipeline: ``prefix + [Sort, Skip, Limit]``
- the count pipeline: ``prefix + [Count]``

so the reported total always reflects the same predicates as the page.
Stores execute pipelines; they never receive raw caller input.

Stage order is fixed (each phase at most once, in this order)::

    JoinBuyer < FilterBySearch < FilterByFields < Sort < Skip < Limit < terminal

where the terminal stage is ``Count`` or one of the aggregate stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

from modules.orders.constants import OrderSortField, SortDirection
from modules.orders.exceptions import InvalidPipeline

if TYPE_CHECKING:
    from modules.orders.dtos import OrderQuerySpec


# ---------------------------------------------------------------------------
# Stage vocabulary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JoinBuyer:
    """Attach buyer name/email/phone (guest fallback) and the order reference."""


@dataclass(frozen=True)
class FilterBySearch:
    """Case-insensitive substring match OR-ed across buyer and order fields."""

    term: str


@dataclass(frozen=True)
class FilterByFields:
    status: Optional[str] = None
    payment_status: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.payment_status is None
            and self.created_from is None
            and self.created_to is None
        )


@dataclass(frozen=True)
class Sort:
    field: str = OrderSortField.CREATED_AT
    direction: str = SortDirection.DESC


@dataclass(frozen=True)
class Skip:
    count: int


@dataclass(frozen=True)
class Limit:
    count: int


@dataclass(frozen=True)
class Count:
    """Terminal: number of records matched by the preceding stages."""


@dataclass(frozen=True)
class SumTotalPrice:
    """Terminal: sum of ``total_price`` (zero when nothing matches)."""


@dataclass(frozen=True)
class CountByStatus:
    """Terminal: record count per order status present in the input."""


@dataclass(frozen=True)
class DailySales:
    """Terminal: per calendar day totals, ascending by day.

    Days are computed in ``time_zone`` (an IANA name).
    """

    time_zone: str = "UTC"


Stage = Union[
    JoinBuyer,
    FilterBySearch,
    FilterByFields,
    Sort,
    Skip,
    Limit,
    Count,
    SumTotalPrice,
    CountByStatus,
    DailySales,
]

TERMINAL_STAGES = (Count, SumTotalPrice, CountByStatus, DailySales)
AGGREGATE_STAGES = (SumTotalPrice, CountByStatus, DailySales)

_PHASES = {
    JoinBuyer: 0,
    FilterBySearch: 1,
    FilterByFields: 2,
    Sort: 3,
    Skip: 4,
    Limit: 5,
    Count: 6,
    SumTotalPrice: 6,
    CountByStatus: 6,
    DailySales: 6,
}


def validate_pipeline(stages: Sequence[Stage]) -> None:
    """Raise ``InvalidPipeline`` unless ``stages`` follow the fixed order."""
    last_phase = -1
    has_join = False
    for position, stage in enumerate(stages):
        phase = _PHASES.get(type(stage))
        if phase is None:
            raise InvalidPipeline(f"Unknown stage {stage!r} at position {position}.")
        if phase <= last_phase:
            raise InvalidPipeline(
                f"Stage {type(stage).__name__} at position {position} is out of order."
            )
        if isinstance(stage, FilterBySearch) and not has_join:
            raise InvalidPipeline("FilterBySearch requires a preceding JoinBuyer.")
        if isinstance(stage, (Skip, Limit)) and stage.count < 0:
            raise InvalidPipeline(f"{type(stage).__name__} must not be negative.")
        if isinstance(stage, Sort) and (
            stage.field not in OrderSortField.values
            or stage.direction not in SortDirection.values
        ):
            raise InvalidPipeline(f"Unsupported sort {stage.field!r} {stage.direction!r}.")
        has_join = has_join or isinstance(stage, JoinBuyer)
        last_phase = phase


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class OrderPipelineBuilder:
    """Translate a list/search request into page and count pipelines."""

    def build(self, spec: OrderQuerySpec) -> List[Stage]:
        return [
            *self.filter_prefix(spec),
            Sort(field=spec.sort_by, direction=spec.sort_order),
            Skip(count=spec.offset),
            Limit(count=spec.limit),
        ]

    def build_count(self, spec: OrderQuerySpec) -> List[Stage]:
        return [*self.filter_prefix(spec), Count()]

    def filter_prefix(self, spec: OrderQuerySpec) -> List[Stage]:
        # The join comes first even without a search term so page items
        # always carry the buyer summary.
        stages: List[Stage] = [JoinBuyer()]
        if spec.search:
            stages.append(FilterBySearch(term=spec.search))

        fields = FilterByFields(
            status=spec.status,
            payment_status=spec.payment_status,
            created_from=spec.date_from,
            created_to=spec.date_to,
        )
        if not fields.is_empty:
            stages.append(fields)
        return stages

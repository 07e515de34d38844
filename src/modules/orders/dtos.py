"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``OrderQuerySpec``: validated list/search request.
- ``PaginationEnvelope`` / ``OrderPage``: list response.
- ``OrderDetailDTO``: full order with items and history.
- ``StatusUpdateResult`` / ``PaymentUpdateResult`` / ``OrderDeletion``:
  lifecycle command results.
- ``OrderStats``: reporting summary.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from modules.orders.constants import (
    DEFAULT_PAGE_SIZE,
    GUEST_BUYER_NAME,
    MAX_PAGE_SIZE,
    OrderSortField,
    OrderStatus,
    PaymentStatus,
    SortDirection,
)
from modules.orders.exceptions import InvalidQuery

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into a single readable line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "request"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class OrderQuerySpec(BaseModel):
    """Immutable, validated list/search request.

    Validates:
    - ``page >= 1`` and ``1 <= limit <= MAX_PAGE_SIZE``.
    - ``status`` / ``payment_status`` / ``sort_by`` / ``sort_order``
      belong to their enumerations.
    - ``date_from <= date_to`` when both are given.

    Bare dates are widened to the whole day (``date_to`` becomes the last
    instant of that day); naive datetimes are read as UTC.
    """

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    sort_by: OrderSortField = OrderSortField.CREATED_AT
    sort_order: SortDirection = SortDirection.DESC

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def widen_bare_dates(cls, v: Any, info) -> Any:
        if isinstance(v, str) and len(v) == 10:
            try:
                v = date.fromisoformat(v)
            except ValueError:
                return v
        if isinstance(v, date) and not isinstance(v, datetime):
            boundary = time.min if info.field_name == "date_from" else time.max
            return datetime.combine(v, boundary, tzinfo=timezone.utc)
        return v

    @field_validator("date_from", "date_to")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def date_range_must_be_ordered(self) -> OrderQuerySpec:
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be later than date_to.")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(cls, **params: Any) -> OrderQuerySpec:
        """Build a query from loose caller input, dropping ``None`` values.

        Raises:
            InvalidQuery: any parameter fails validation.
        """
        cleaned = {key: value for key, value in params.items() if value is not None}
        try:
            return cls(**cleaned)
        except ValidationError as exc:
            raise InvalidQuery(describe_validation_error(exc)) from exc


# ---------------------------------------------------------------------------
# Output DTOs: list
# ---------------------------------------------------------------------------


class BuyerSummaryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[UUID] = None
    name: str
    email: str = ""
    phone: str = ""

    @classmethod
    def from_order(cls, order: Order) -> BuyerSummaryDTO:
        """Prefer the ``JoinBuyer`` annotations; fall back to the relations."""
        if hasattr(order, "buyer_name"):
            return cls(
                id=order.customer_id,
                name=order.buyer_name,
                email=order.buyer_email or "",
                phone=order.buyer_phone or "",
            )
        if order.customer_id is not None:
            customer = order.customer
            return cls(
                id=customer.id,
                name=customer.name,
                email=customer.email,
                phone=customer.phone,
            )
        return cls(
            name=order.guest_name or GUEST_BUYER_NAME,
            email=order.guest_email,
            phone=order.guest_phone,
        )


class OrderListItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    order_number: str
    buyer: BuyerSummaryDTO
    total_price: Decimal
    status: str
    payment_status: str
    is_paid: bool
    is_delivered: bool
    created_at: datetime

    @classmethod
    def from_entity(cls, order: Order) -> OrderListItemDTO:
        return cls(
            id=order.id,
            order_number=order.order_number,
            buyer=BuyerSummaryDTO.from_order(order),
            total_price=order.total_price,
            status=order.status,
            payment_status=order.payment_status,
            is_paid=order.is_paid,
            is_delivered=order.is_delivered,
            created_at=order.created_at,
        )


class PaginationEnvelope(BaseModel):
    """Page metadata.  ``total_pages`` is 0 when nothing matches."""

    model_config = ConfigDict(frozen=True)

    current_page: int
    total_pages: int
    total_orders: int
    has_next_page: bool
    has_prev_page: bool
    limit: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> PaginationEnvelope:
        total_pages = -(-total // limit)
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_orders=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
            limit=limit,
        )


class OrderPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[OrderListItemDTO]
    pagination: PaginationEnvelope


# ---------------------------------------------------------------------------
# Output DTOs: detail
# ---------------------------------------------------------------------------


class OrderItemOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    product_id: UUID
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class StatusHistoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    old_status: Optional[str]
    new_status: str
    notes: str
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            id=history.id,
            old_status=history.old_status,
            new_status=history.new_status,
            notes=history.notes,
            created_at=history.created_at,
        )


class OrderDetailDTO(BaseModel):
    """Immutable DTO for the order detail view."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    order_number: str
    buyer: BuyerSummaryDTO
    shipping_name: str
    shipping_phone: str
    shipping_address: str
    payment_method: str
    total_price: Decimal
    status: str
    payment_status: str
    is_paid: bool
    paid_at: Optional[datetime]
    is_delivered: bool
    delivered_at: Optional[datetime]
    transaction_id: str
    compensation_pending: bool
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOutputDTO]
    history: List[StatusHistoryDTO]

    @classmethod
    def from_entity(cls, order: Order) -> OrderDetailDTO:
        """Build an output DTO from an Order model instance.

        Assumes ``items__product`` and ``status_history`` are prefetched.
        """
        items = [
            OrderItemOutputDTO(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name or item.product.name,
                product_sku=item.product.sku,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )
            for item in order.items.all()
        ]
        history = [StatusHistoryDTO.from_entity(h) for h in order.status_history.all()]
        return cls(
            id=order.id,
            order_number=order.order_number,
            buyer=BuyerSummaryDTO.from_order(order),
            shipping_name=order.shipping_name,
            shipping_phone=order.shipping_phone,
            shipping_address=order.shipping_address,
            payment_method=order.payment_method,
            total_price=order.total_price,
            status=order.status,
            payment_status=order.payment_status,
            is_paid=order.is_paid,
            paid_at=order.paid_at,
            is_delivered=order.is_delivered,
            delivered_at=order.delivered_at,
            transaction_id=order.transaction_id,
            compensation_pending=order.compensation_pending,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=items,
            history=history,
        )


# ---------------------------------------------------------------------------
# Output DTOs: lifecycle commands
# ---------------------------------------------------------------------------


class RestockFailureDTO(BaseModel):
    """A line item whose stock could not be given back."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    reason: str


class StatusUpdateResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    status: str
    is_delivered: bool
    delivered_at: Optional[datetime]
    compensation_pending: bool
    restock_failures: List[RestockFailureDTO] = Field(default_factory=list)


class PaymentUpdateResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    payment_status: str
    is_paid: bool
    paid_at: Optional[datetime]
    transaction_id: str


class OrderDeletion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    previous_status: str
    restock_failures: List[RestockFailureDTO] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Output DTOs: reporting
# ---------------------------------------------------------------------------


class RecentOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    order_number: str
    buyer: BuyerSummaryDTO
    total_price: Decimal
    status: str
    created_at: datetime

    @classmethod
    def from_entity(cls, order: Order) -> RecentOrderDTO:
        return cls(
            id=order.id,
            order_number=order.order_number,
            buyer=BuyerSummaryDTO.from_order(order),
            total_price=order.total_price,
            status=order.status,
            created_at=order.created_at,
        )


class DailySalesDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    day: int
    sales_date: date
    total_sales: Decimal
    order_count: int


class OrderStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    period_days: int
    total_orders: int
    total_revenue: Decimal
    period_revenue: Decimal
    status_breakdown: Dict[str, int]
    recent_orders: List[RecentOrderDTO]
    daily_sales: List[DailySalesDTO]

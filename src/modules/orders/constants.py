"""Order domain constants.

Defines the order and payment status enumerations, the rules the
lifecycle service enforces on them, and the list/search vocabulary.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class OrderSortField(models.TextChoices):
    CREATED_AT = "created_at", "Created at"
    TOTAL_PRICE = "total_price", "Total price"
    STATUS = "status", "Status"
    PAYMENT_STATUS = "payment_status", "Payment status"
    ORDER_NUMBER = "order_number", "Order number"


class SortDirection(models.TextChoices):
    ASC = "asc", "Ascending"
    DESC = "desc", "Descending"


# Statuses an order may be hard-deleted from.
DELETABLE_STATES: set[str] = {OrderStatus.PENDING, OrderStatus.CANCELLED}

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

GUEST_BUYER_NAME = "Guest"

ORDER_NUMBER_MAX_RETRIES = 5

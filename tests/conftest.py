from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence, Tuple

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.customers.models import Customer
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.models import Order, OrderItem
from modules.products.models import Product


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def admin_client():
    """APIClient force-authenticated as a staff user."""
    client = APIClient()
    user = get_user_model().objects.create_user(
        username="backoffice", password="testpass123", is_staff=True
    )
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def customer():
    return Customer.objects.create(
        name="Maria Silva",
        email="maria@example.com",
        phone="5551234567",
    )


@pytest.fixture()
def make_product():
    counter = {"n": 0}

    def _make(stock: int = 10, sold: int = 0, price: str = "10.00") -> Product:
        counter["n"] += 1
        return Product.objects.create(
            sku=f"TEST-{counter['n']:03d}",
            name=f"Test Product {counter['n']}",
            price=Decimal(price),
            stock_quantity=stock,
            sold_count=sold,
        )

    return _make


@pytest.fixture()
def make_order():
    """Create an order with line items; ``created_at`` can be backdated."""

    def _make(
        customer: Optional[Customer] = None,
        items: Sequence[Tuple[Product, int]] = (),
        status: str = OrderStatus.PENDING,
        payment_status: str = PaymentStatus.PENDING,
        total_price: Optional[str] = None,
        created_at: Optional[datetime] = None,
        **fields,
    ) -> Order:
        order = Order.objects.create(
            customer=customer,
            status=status,
            payment_status=payment_status,
            is_paid=payment_status == PaymentStatus.COMPLETED,
            **fields,
        )
        total = Decimal("0.00")
        for product, quantity in items:
            item = OrderItem.objects.create(
                order=order,
                product=product,
                quantity=quantity,
                unit_price=product.price,
            )
            total += item.subtotal

        updates = {"total_price": Decimal(total_price) if total_price else total}
        if created_at is not None:
            updates["created_at"] = created_at
        Order.objects.filter(id=order.id).update(**updates)
        order.refresh_from_db()
        return order

    return _make

"""Integration tests for the admin order API.

Covers:
- Listing with search, filters, sorting and pagination metadata.
- Detail retrieval.
- Status, payment and delete commands.
- Domain exception mapping (400, 404, 409, 503).
- Staff-only access.
"""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.core.exceptions import DependencyFailure
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.exceptions import OrderConflict
from modules.orders.models import Order

pytestmark = pytest.mark.integration

BASE_URL = "/api/v1/admin/orders/"


def detail_url(order_id) -> str:
    return f"{BASE_URL}{order_id}/"


class TestAccess:
    def test_anonymous_rejected(self, api_client):
        response = api_client.get(BASE_URL)
        assert response.status_code == 401

    def test_non_staff_forbidden(self):
        client = APIClient()
        user = get_user_model().objects.create_user(username="shopper", password="pw-123456")
        client.force_authenticate(user=user)

        response = client.get(BASE_URL)

        assert response.status_code == 403


class TestListOrders:
    def test_list_shape(self, admin_client, make_order, customer):
        make_order(customer=customer, total_price="42.00")

        response = admin_client.get(BASE_URL)

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {
            "current_page": 1,
            "total_pages": 1,
            "total_orders": 1,
            "has_next_page": False,
            "has_prev_page": False,
            "limit": 20,
        }
        (row,) = body["orders"]
        assert row["buyer"]["name"] == "Maria Silva"
        assert row["total_price"] == "42.00"

    def test_filters_and_pagination(self, admin_client, make_order):
        for _ in range(5):
            make_order(status=OrderStatus.SHIPPED)
        make_order(status=OrderStatus.PENDING)

        response = admin_client.get(BASE_URL, {"status": "shipped", "limit": 2, "page": 2})

        body = response.json()
        assert len(body["orders"]) == 2
        assert body["pagination"]["total_orders"] == 5
        assert body["pagination"]["total_pages"] == 3
        assert body["pagination"]["has_next_page"] is True
        assert body["pagination"]["has_prev_page"] is True

    def test_search_by_guest_name(self, admin_client, make_order):
        make_order(guest_name="Joana Prado")
        make_order(guest_name="Pedro Alves")

        response = admin_client.get(BASE_URL, {"search": "joana"})

        names = [row["buyer"]["name"] for row in response.json()["orders"]]
        assert names == ["Joana Prado"]

    def test_sort_ascending_by_total(self, admin_client, make_order):
        make_order(total_price="5.00")
        make_order(total_price="1.00")

        response = admin_client.get(BASE_URL, {"sort_by": "total_price", "sort_order": "asc"})

        totals = [row["total_price"] for row in response.json()["orders"]]
        assert totals == ["1.00", "5.00"]

    @pytest.mark.parametrize(
        "params",
        [
            {"status": "lost"},
            {"limit": 500},
            {"page": 0},
            {"sort_by": "password"},
            {"date_from": "2024-05-01", "date_to": "2024-04-01"},
        ],
    )
    def test_invalid_params_are_400(self, admin_client, params):
        response = admin_client.get(BASE_URL, params)

        assert response.status_code == 400
        assert "detail" in response.json()


class TestRetrieve:
    def test_detail(self, admin_client, make_order, make_product):
        product = make_product(price="12.00")
        order = make_order(items=[(product, 2)], shipping_address="1 Main St")

        response = admin_client.get(detail_url(order.id))

        assert response.status_code == 200
        body = response.json()
        assert body["order_number"] == order.order_number
        assert body["shipping_address"] == "1 Main St"
        assert body["items"][0]["product_sku"] == product.sku
        assert body["items"][0]["subtotal"] == "24.00"
        assert body["history"] == []

    def test_not_found(self, admin_client):
        response = admin_client.get(detail_url(uuid4()))
        assert response.status_code == 404

    def test_malformed_id(self, admin_client):
        response = admin_client.get(detail_url("nope"))
        assert response.status_code == 400


class TestStatusUpdate:
    def test_update(self, admin_client, make_order):
        order = make_order(status=OrderStatus.SHIPPED)

        response = admin_client.patch(
            f"{detail_url(order.id)}status/",
            {"status": "delivered", "notes": "Left at door"},
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "delivered"
        assert body["is_delivered"] is True
        assert body["restock_failures"] == []

    def test_put_is_accepted(self, admin_client, make_order):
        order = make_order()

        response = admin_client.put(
            f"{detail_url(order.id)}status/", {"status": "confirmed"}, format="json"
        )

        assert response.status_code == 200

    def test_invalid_status(self, admin_client, make_order):
        order = make_order()

        response = admin_client.patch(
            f"{detail_url(order.id)}status/", {"status": "teleported"}, format="json"
        )

        assert response.status_code == 400
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    def test_reopen_cancelled_is_400(self, admin_client, make_order):
        order = make_order(status=OrderStatus.CANCELLED)

        response = admin_client.patch(
            f"{detail_url(order.id)}status/", {"status": "pending"}, format="json"
        )

        assert response.status_code == 400

    def test_unknown_order(self, admin_client):
        response = admin_client.patch(
            f"{detail_url(uuid4())}status/", {"status": "shipped"}, format="json"
        )
        assert response.status_code == 404

    def test_conflict_is_409(self, admin_client, make_order):
        order = make_order()

        with patch(
            "modules.orders.repositories.django_repository.OrderDjangoRepository.save",
            side_effect=OrderConflict("modified concurrently"),
        ):
            response = admin_client.patch(
                f"{detail_url(order.id)}status/", {"status": "confirmed"}, format="json"
            )

        assert response.status_code == 409

    def test_store_failure_is_503(self, admin_client, make_order):
        order = make_order()

        with patch(
            "modules.orders.repositories.django_repository.OrderDjangoRepository.get_for_update",
            side_effect=DependencyFailure("get_for_update failed: connection reset"),
        ):
            response = admin_client.patch(
                f"{detail_url(order.id)}status/", {"status": "confirmed"}, format="json"
            )

        assert response.status_code == 503
        assert "connection reset" not in response.json()["detail"]


class TestPaymentUpdate:
    def test_complete_payment(self, admin_client, make_order):
        order = make_order()

        response = admin_client.patch(
            f"{detail_url(order.id)}payment/",
            {"payment_status": "completed", "transaction_id": "TX-77"},
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["is_paid"] is True
        assert body["transaction_id"] == "TX-77"
        assert body["paid_at"] is not None

    def test_invalid_payment_status(self, admin_client, make_order):
        order = make_order(payment_status=PaymentStatus.COMPLETED)

        response = admin_client.patch(
            f"{detail_url(order.id)}payment/", {"payment_status": "refunded"}, format="json"
        )

        assert response.status_code == 400
        order.refresh_from_db()
        assert order.is_paid is True


class TestDelete:
    def test_delete_pending(self, admin_client, make_order, make_product):
        product = make_product(stock=1)
        order = make_order(items=[(product, 2)])

        response = admin_client.delete(detail_url(order.id))

        assert response.status_code == 200
        assert response.json()["previous_status"] == "pending"
        assert not Order.objects.filter(id=order.id).exists()
        product.refresh_from_db()
        assert product.stock_quantity == 3

    def test_delete_delivered_refused(self, admin_client, make_order):
        order = make_order(status=OrderStatus.DELIVERED)

        response = admin_client.delete(detail_url(order.id))

        assert response.status_code == 400
        assert Order.objects.filter(id=order.id).exists()


class TestStats:
    def test_stats(self, admin_client, make_order):
        make_order(payment_status=PaymentStatus.COMPLETED, total_price="10.00")

        response = admin_client.get(f"{BASE_URL}stats/", {"period": 7})

        assert response.status_code == 200
        body = response.json()
        assert body["period_days"] == 7
        assert body["total_orders"] == 1
        assert body["total_revenue"] == "10.00"
        assert body["status_breakdown"]["pending"] == 1
        assert len(body["daily_sales"]) == 1

    def test_default_period(self, admin_client):
        response = admin_client.get(f"{BASE_URL}stats/")
        assert response.json()["period_days"] == 30

    def test_invalid_period(self, admin_client):
        response = admin_client.get(f"{BASE_URL}stats/", {"period": 0})
        assert response.status_code == 400

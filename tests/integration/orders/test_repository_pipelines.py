"""Integration tests for OrderDjangoRepository pipeline execution."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from modules.core.exceptions import DependencyFailure
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.dtos import OrderQuerySpec
from modules.orders.exceptions import InvalidPipeline, OrderConflict
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.pipeline import (
    Count,
    CountByStatus,
    DailySales,
    FilterByFields,
    FilterBySearch,
    JoinBuyer,
    Limit,
    OrderPipelineBuilder,
    Skip,
    Sort,
    SumTotalPrice,
)
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.integration


@pytest.fixture()
def repo():
    return OrderDjangoRepository()


@pytest.fixture()
def builder():
    return OrderPipelineBuilder()


class TestJoinAndSearch:
    def test_guest_buyer_falls_back_to_guest_fields(self, repo, make_order):
        earlier = datetime(2024, 1, 1, tzinfo=timezone.utc)
        make_order(
            guest_name="Walk-in Buyer", guest_email="walkin@example.com", created_at=earlier
        )
        make_order(created_at=earlier + timedelta(hours=1))

        orders = repo.execute_query([JoinBuyer(), Sort(field="created_at", direction="asc")])

        assert [o.buyer_name for o in orders] == ["Walk-in Buyer", "Guest"]
        assert orders[0].buyer_email == "walkin@example.com"

    def test_registered_buyer_from_customer(self, repo, make_order, customer):
        make_order(customer=customer, guest_name="ignored")

        (order,) = repo.execute_query([JoinBuyer()])

        assert order.buyer_name == "Maria Silva"
        assert order.buyer_phone == "5551234567"

    @pytest.mark.parametrize("term", ["MARIA", "silva", "maria@example", "1234567"])
    def test_search_matches_buyer_fields(self, repo, make_order, customer, term):
        make_order(customer=customer)
        make_order(guest_name="Someone Else")

        count = repo.execute_count([JoinBuyer(), FilterBySearch(term=term), Count()])

        assert count == 1

    def test_search_matches_shipping_and_order_number(self, repo, make_order):
        target = make_order(shipping_name="Dock 9 Receiving", shipping_phone="5550009999")
        make_order()

        by_shipping = repo.execute_query([JoinBuyer(), FilterBySearch(term="dock 9")])
        by_number = repo.execute_query(
            [JoinBuyer(), FilterBySearch(term=target.order_number[-6:].lower())]
        )

        assert [o.id for o in by_shipping] == [target.id]
        assert [o.id for o in by_number] == [target.id]

    def test_search_matches_order_id(self, repo, make_order):
        target = make_order()
        make_order()

        orders = repo.execute_query([JoinBuyer(), FilterBySearch(term=str(target.id))])

        assert [o.id for o in orders] == [target.id]

    def test_search_treats_regex_characters_literally(self, repo, make_order):
        make_order(guest_name="A.*B")
        make_order(guest_name="AxxB")

        count = repo.execute_count([JoinBuyer(), FilterBySearch(term=".*"), Count()])

        assert count == 1


class TestFiltersSortAndPaging:
    def test_page_and_count_share_predicates(self, repo, builder, make_order):
        for _ in range(7):
            make_order(status=OrderStatus.SHIPPED)
        make_order(status=OrderStatus.PENDING)

        spec = OrderQuerySpec(status="shipped", page=2, limit=3)
        page = repo.execute_query(builder.build(spec))
        total = repo.execute_count(builder.build_count(spec))

        assert total == 7
        assert len(page) == 3
        assert all(o.status == OrderStatus.SHIPPED for o in page)

    def test_pages_walk_every_match_once(self, repo, builder, make_order):
        created = {make_order().id for _ in range(5)}

        seen = []
        for page in (1, 2, 3):
            spec = OrderQuerySpec(page=page, limit=2)
            seen.extend(o.id for o in repo.execute_query(builder.build(spec)))

        assert len(seen) == 5
        assert set(seen) == created

    def test_page_beyond_end_is_empty(self, repo, builder, make_order):
        make_order()
        spec = OrderQuerySpec(page=5, limit=10)

        assert repo.execute_query(builder.build(spec)) == []
        assert repo.execute_count(builder.build_count(spec)) == 1

    def test_date_range_is_inclusive(self, repo, make_order):
        start = datetime(2024, 3, 1, tzinfo=timezone.utc)
        make_order(created_at=start - timedelta(seconds=1))
        inside = make_order(created_at=start)
        make_order(created_at=start + timedelta(days=2))

        orders = repo.execute_query(
            [
                FilterByFields(
                    created_from=start,
                    created_to=start + timedelta(days=1),
                )
            ]
        )

        assert [o.id for o in orders] == [inside.id]

    def test_sort_by_total_price(self, repo, make_order):
        make_order(total_price="30.00")
        make_order(total_price="10.00")
        make_order(total_price="20.00")

        asc = repo.execute_query([Sort(field="total_price", direction="asc")])
        desc = repo.execute_query([Sort(field="total_price", direction="desc")])

        assert [o.total_price for o in asc] == [Decimal("10.00"), Decimal("20.00"), Decimal("30.00")]
        assert [o.total_price for o in desc] == list(reversed([o.total_price for o in asc]))

    def test_skip_and_limit_collapse_into_one_slice(self, repo, make_order):
        ids = [make_order(total_price=f"{n}.00").id for n in range(1, 6)]

        orders = repo.execute_query(
            [Sort(field="total_price", direction="asc"), Skip(count=1), Limit(count=2)]
        )

        assert [o.id for o in orders] == ids[1:3]

    def test_zero_limit_returns_nothing(self, repo, make_order):
        make_order()
        assert repo.execute_query([Limit(count=0)]) == []


class TestAggregates:
    def test_sum_total_price_of_nothing_is_zero(self, repo):
        total = repo.execute_aggregate(
            [FilterByFields(payment_status=PaymentStatus.COMPLETED), SumTotalPrice()]
        )
        assert str(total) == "0.00"

    def test_sum_total_price(self, repo, make_order):
        make_order(payment_status=PaymentStatus.COMPLETED, total_price="12.50")
        make_order(payment_status=PaymentStatus.COMPLETED, total_price="7.50")
        make_order(payment_status=PaymentStatus.PENDING, total_price="99.00")

        total = repo.execute_aggregate(
            [FilterByFields(payment_status=PaymentStatus.COMPLETED), SumTotalPrice()]
        )

        assert total == Decimal("20.00")

    def test_money_sums_keep_two_decimal_places(self, repo, make_order):
        make_order(total_price="10.00", payment_status=PaymentStatus.COMPLETED)

        total = repo.execute_aggregate([SumTotalPrice()])
        (row,) = repo.execute_aggregate([DailySales(time_zone="UTC")])

        assert str(total) == "10.00"
        assert str(row["total_sales"]) == "10.00"

    def test_count_by_status(self, repo, make_order):
        make_order(status=OrderStatus.PENDING)
        make_order(status=OrderStatus.PENDING)
        make_order(status=OrderStatus.CANCELLED)

        counts = repo.execute_aggregate([CountByStatus()])

        assert counts == {"pending": 2, "cancelled": 1}

    def test_daily_sales_buckets_by_reporting_zone(self, repo, make_order):
        # 02:00 UTC on the 2nd is still the 1st in New York.
        make_order(total_price="10.00", created_at=datetime(2024, 5, 2, 2, 0, tzinfo=timezone.utc))
        make_order(total_price="5.00", created_at=datetime(2024, 5, 1, 15, 0, tzinfo=timezone.utc))
        make_order(total_price="8.00", created_at=datetime(2024, 5, 2, 15, 0, tzinfo=timezone.utc))

        utc_rows = repo.execute_aggregate([DailySales(time_zone="UTC")])
        ny_rows = repo.execute_aggregate([DailySales(time_zone="America/New_York")])

        assert [(r["day"], r["order_count"]) for r in utc_rows] == [
            (date(2024, 5, 1), 1),
            (date(2024, 5, 2), 2),
        ]
        assert [(r["day"], r["order_count"]) for r in ny_rows] == [
            (date(2024, 5, 1), 2),
            (date(2024, 5, 2), 1),
        ]
        assert ny_rows[0]["total_sales"] == Decimal("15.00")

    def test_aggregate_rejects_pagination(self, repo):
        with pytest.raises(InvalidPipeline):
            repo.execute_aggregate([Sort(), CountByStatus()])

    def test_query_rejects_terminal_stage(self, repo):
        with pytest.raises(InvalidPipeline):
            repo.execute_query([JoinBuyer(), Count()])

    def test_count_requires_count_stage(self, repo):
        with pytest.raises(InvalidPipeline):
            repo.execute_count([JoinBuyer()])


class TestLifecycleWrites:
    def test_save_bumps_version(self, repo, make_order):
        order = make_order()
        locked = repo.get_for_update(str(order.id))
        locked.status = OrderStatus.CONFIRMED

        repo.save(locked)

        order.refresh_from_db()
        assert order.status == OrderStatus.CONFIRMED
        assert order.version == 2
        assert locked.version == 2

    def test_stale_version_raises_conflict(self, repo, make_order):
        order = make_order()
        first = repo.get_for_update(str(order.id))
        second = repo.get_for_update(str(order.id))

        first.status = OrderStatus.CONFIRMED
        repo.save(first)
        second.status = OrderStatus.SHIPPED

        with pytest.raises(OrderConflict):
            repo.save(second)

        order.refresh_from_db()
        assert order.status == OrderStatus.CONFIRMED

    def test_add_history(self, repo, make_order):
        order = make_order()

        repo.add_history(order.id, OrderStatus.CONFIRMED, OrderStatus.PENDING, notes="ok")

        entry = OrderStatusHistory.objects.get(order=order)
        assert (entry.old_status, entry.new_status, entry.notes) == ("pending", "confirmed", "ok")

    def test_delete_cascades(self, repo, make_order, make_product):
        order = make_order(items=[(make_product(), 1)])
        repo.add_history(order.id, OrderStatus.PENDING, None)

        assert repo.delete(str(order.id)) is True
        assert not Order.objects.filter(id=order.id).exists()
        assert not OrderStatusHistory.objects.filter(order_id=order.id).exists()
        assert repo.delete(str(order.id)) is False

    def test_get_by_id_with_malformed_id(self, repo):
        assert repo.get_by_id("not-a-uuid") is None

    def test_database_errors_become_dependency_failures(self, repo, monkeypatch):
        from django.db import DatabaseError

        def broken(*args, **kwargs):
            raise DatabaseError("connection lost")

        monkeypatch.setattr(Order.objects, "select_related", broken)

        with pytest.raises(DependencyFailure) as excinfo:
            repo.get_by_id("0190a3b2-0000-7000-8000-000000000000")

        assert isinstance(excinfo.value.__cause__, DatabaseError)

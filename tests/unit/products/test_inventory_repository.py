"""Tests for ProductDjangoRepository.increment_stock."""

from __future__ import annotations

from uuid import uuid4

import pytest
from django.db import DatabaseError

from modules.core.exceptions import DependencyFailure
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return ProductDjangoRepository()


def test_increment_restores_stock_and_sold_count(repo, make_product):
    product = make_product(stock=4, sold=6)

    assert repo.increment_stock(product.id, 3) is True

    product.refresh_from_db()
    assert product.stock_quantity == 7
    assert product.sold_count == 3


def test_sold_count_never_goes_negative(repo, make_product):
    product = make_product(stock=0, sold=1)

    repo.increment_stock(product.id, 5)

    product.refresh_from_db()
    assert product.stock_quantity == 5
    assert product.sold_count == 0


def test_missing_product_returns_false(repo):
    assert repo.increment_stock(uuid4(), 1) is False


def test_non_positive_amount_is_noop(repo, make_product):
    product = make_product(stock=2)

    assert repo.increment_stock(product.id, 0) is True

    product.refresh_from_db()
    assert product.stock_quantity == 2


def test_database_error_translated(repo, make_product, monkeypatch):
    product = make_product()

    def broken(*args, **kwargs):
        raise DatabaseError("deadlock detected")

    monkeypatch.setattr(Product.objects, "filter", broken)

    with pytest.raises(DependencyFailure, match="increment_stock") as excinfo:
        repo.increment_stock(product.id, 1)

    assert isinstance(excinfo.value.__cause__, DatabaseError)


def test_sku_normalised_on_save():
    product = Product.objects.create(sku="  kb-01 ", name="Keyboard", price="10.00")
    assert product.sku == "KB-01"

"""Tests for ProductService."""

from unittest.mock import Mock

import pytest
from pydantic import ValidationError

from core.errors import NotFoundError, OperationFailedError, StoreUnavailableError, UnauthorizedError
from core.models import ProductCreate, ProductUpdate
from core.services.product_service import ProductService
from core.store import DocumentStore


def _create(product_service, owner_id, clock, **overrides):
    clock.advance(minutes=1)
    fields = {"name": "Design hour", "unit_price": 80, "category": "Services", "tax_rate": 15}
    fields.update(overrides)
    return product_service.create(ProductCreate(**fields), owner_id)


class TestProductCreate:

    def test_creates_product(self, product_service, owner_id, clock):
        product = _create(product_service, owner_id, clock)

        assert product.id
        assert product.owner_id == owner_id
        assert product.unit_price == 80
        assert product.created_at == clock.now()

    def test_rejects_negative_price(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="Bad", unit_price=-1)

    def test_store_failure_is_operation_failed(self, clock, owner_id):
        store = Mock(spec=DocumentStore)
        store.create.side_effect = StoreUnavailableError("down")

        with pytest.raises(OperationFailedError, match="create product"):
            ProductService(store, clock).create(ProductCreate(name="X"), owner_id)


class TestProductReadWrite:

    def test_get_missing_returns_none(self, product_service, owner_id):
        assert product_service.get("nope", owner_id) is None

    def test_get_other_owner_raises(self, product_service, owner_id, other_owner_id, clock):
        product = _create(product_service, owner_id, clock)

        with pytest.raises(UnauthorizedError):
            product_service.get(product.id, other_owner_id)

    def test_update_merges_set_fields(self, product_service, owner_id, clock):
        product = _create(product_service, owner_id, clock)
        clock.advance(hours=1)

        updated = product_service.update(product.id, ProductUpdate(unit_price=95), owner_id)

        assert updated.unit_price == 95
        assert updated.name == "Design hour"
        assert updated.updated_at == clock.now()
        assert product_service.get(product.id, owner_id).unit_price == 95

    def test_update_other_owner_raises(self, product_service, owner_id, other_owner_id, clock):
        product = _create(product_service, owner_id, clock)

        with pytest.raises(UnauthorizedError, match="update"):
            product_service.update(product.id, ProductUpdate(name="Mine"), other_owner_id)

    def test_delete(self, product_service, owner_id, clock):
        product = _create(product_service, owner_id, clock)

        product_service.delete(product.id, owner_id)

        assert product_service.get(product.id, owner_id) is None
        with pytest.raises(NotFoundError):
            product_service.delete(product.id, owner_id)


class TestProductListing:

    def test_list_by_owner_newest_first(self, product_service, owner_id, other_owner_id, clock):
        first = _create(product_service, owner_id, clock)
        second = _create(product_service, owner_id, clock)
        _create(product_service, other_owner_id, clock)

        assert [p.id for p in product_service.list_by_owner(owner_id)] == [second.id, first.id]

    def test_list_by_category(self, product_service, owner_id, clock):
        hosting = _create(product_service, owner_id, clock, name="Hosting", category="Hosting")
        _create(product_service, owner_id, clock)

        assert [p.id for p in product_service.list_by_category(owner_id, "Hosting")] == [hosting.id]

    def test_categories_sorted_unique_without_blanks(self, product_service, owner_id, other_owner_id, clock):
        _create(product_service, owner_id, clock, category="Services")
        _create(product_service, owner_id, clock, category="Hosting")
        _create(product_service, owner_id, clock, category="Services")
        _create(product_service, owner_id, clock, category="")
        _create(product_service, other_owner_id, clock, category="Travel")

        assert product_service.categories(owner_id) == ["Hosting", "Services"]

    def test_subscribe_delivers_owner_products(self, product_service, owner_id, clock):
        snapshots = []
        subscription = product_service.subscribe(owner_id, snapshots.append)

        product = _create(product_service, owner_id, clock)
        subscription.unsubscribe()
        _create(product_service, owner_id, clock)

        assert snapshots[0] == []
        assert [p.id for p in snapshots[-1]] == [product.id]

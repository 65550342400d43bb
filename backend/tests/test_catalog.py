"""
Catalog and stock control tests.

Verifies:
- Stock never goes negative through update_stock, decrement or restore
- Low-stock predicate is exactly stock_quantity <= low_stock_threshold
- Variant creation rules (product exists, SKU unique, non-negative counts)
"""

import pytest

from posapp.errors import InsufficientStockError, NotFoundError
from posapp.extensions import db
from posapp.models import ProductVariant
from posapp.services import catalog_service
from posapp.validation import ConflictError, ValidationError


def stock_of(variant_id: int) -> int:
    return db.session.get(ProductVariant, variant_id, populate_existing=True).stock_quantity


class TestUpdateStock:

    def test_delta_restock_and_write_off(self, variant):
        catalog_service.update_stock(variant.id, 5)
        assert stock_of(variant.id) == 15

        catalog_service.update_stock(variant.id, -15)
        assert stock_of(variant.id) == 0

    def test_delta_below_zero_rejected_wholesale(self, variant):
        with pytest.raises(InsufficientStockError) as exc_info:
            catalog_service.update_stock(variant.id, -11)

        assert exc_info.value.available == 10
        assert exc_info.value.requested == 11
        assert stock_of(variant.id) == 10

    def test_absolute_set(self, variant):
        updated = catalog_service.update_stock(variant.id, 3, absolute=True)

        assert updated.stock_quantity == 3
        assert stock_of(variant.id) == 3

    def test_absolute_negative_rejected(self, variant):
        with pytest.raises(InsufficientStockError) as exc_info:
            catalog_service.update_stock(variant.id, -1, absolute=True)

        assert exc_info.value.available == 10
        assert exc_info.value.requested == -1

        assert stock_of(variant.id) == 10

    @pytest.mark.parametrize("absolute", [False, True])
    def test_unknown_variant(self, db_session, absolute):
        with pytest.raises(NotFoundError):
            catalog_service.update_stock(424242, 1, absolute=absolute)

    def test_decrement_and_restore_share_the_guard(self, variant):
        with pytest.raises(InsufficientStockError):
            catalog_service.decrement_stock(variant.id, 11)
        db.session.rollback()
        assert stock_of(variant.id) == 10

        catalog_service.decrement_stock(variant.id, 10)
        catalog_service.restore_stock(variant.id, 4)
        db.session.commit()
        assert stock_of(variant.id) == 4

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_decrement_requires_positive_quantity(self, variant, quantity):
        with pytest.raises(ValidationError):
            catalog_service.decrement_stock(variant.id, quantity)


class TestLowStock:

    def test_predicate_includes_equality(self, make_variant):
        combos = [(0, 0), (5, 5), (6, 5), (4, 5), (0, 3), (1, 0), (100, 99)]
        created = {combo: make_variant(stock=combo[0], threshold=combo[1]) for combo in combos}

        low_ids = {v.id for v in catalog_service.get_low_stock_variants()}

        expected = {v.id for (stock, threshold), v in created.items() if stock <= threshold}
        assert low_ids == expected

    def test_emptiest_first(self, make_variant):
        two = make_variant(stock=2, threshold=5)
        zero = make_variant(stock=0, threshold=5)

        assert [v.id for v in catalog_service.get_low_stock_variants()] == [zero.id, two.id]

    def test_restock_clears_flag(self, make_variant):
        variant = make_variant(stock=5, threshold=5)
        assert variant.is_low_stock

        catalog_service.update_stock(variant.id, 1)

        assert catalog_service.get_low_stock_variants() == []


class TestCatalogCreation:

    def test_category_and_product(self, db_session):
        category = catalog_service.create_category("Shirts", "Tops")
        product = catalog_service.create_product("Oxford", 2999, category_id=category.id)

        assert product.category_id == category.id
        assert product.to_dict()["base_price"] == 29.99
        assert [c.name for c in catalog_service.list_categories()] == ["Shirts"]
        assert [p.id for p in catalog_service.list_products()] == [product.id]

    def test_product_with_unknown_category(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.create_product("Oxford", 2999, category_id=424242)

    def test_product_price_must_be_positive(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_product("Oxford", 0)

    def test_duplicate_sku(self, variant):
        with pytest.raises(ConflictError) as exc_info:
            catalog_service.create_product_variant(
                product_id=variant.product_id,
                variant_name="Duplicate",
                sku=variant.sku,
                price_cents=100,
            )
        assert exc_info.value.details == {"sku": variant.sku}

    def test_variant_for_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.create_product_variant(
                product_id=424242, variant_name="Ghost", sku="GHOST-1", price_cents=100,
            )

    @pytest.mark.parametrize(
        "overrides",
        [
            {"price_cents": 0},
            {"stock_quantity": -1},
            {"low_stock_threshold": -1},
        ],
    )
    def test_variant_field_rules(self, variant, overrides):
        fields = dict(
            product_id=variant.product_id,
            variant_name="Bad",
            sku="BAD-1",
            price_cents=100,
        )
        fields.update(overrides)

        with pytest.raises(ValidationError):
            catalog_service.create_product_variant(**fields)

    def test_variant_serialization(self, make_variant):
        variant = make_variant(stock=3, threshold=5, price_cents=1599)
        data = variant.to_dict()

        assert data["price"] == 15.99
        assert data["stock_quantity"] == 3
        assert data["is_low_stock"] is True
        assert data["size"] == "M"

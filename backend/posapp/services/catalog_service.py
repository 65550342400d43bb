# Overview: Service-layer operations for the catalog and stock control.

"""
Catalog & Stock Control

Stock invariant (authoritative):
- ProductVariant.stock_quantity is never negative after a committed operation.
- Every stock change (manual update, sale decrement, refund restore) is a
  single conditional UPDATE guarded by `stock_quantity + delta >= 0`, so two
  racing requests cannot both consume the last unit. No read-modify-write.
- decrement_stock / restore_stock do not commit; the caller's unit of work
  decides. update_stock is its own unit of work.
"""

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import NotFoundError, InsufficientStockError
from ..models import Category, Product, ProductVariant
from ..validation import ValidationError, ConflictError
from posapp.time_utils import utcnow
from .concurrency import unit_of_work


# =============================================================================
# CATEGORIES & PRODUCTS
# =============================================================================

def create_category(name: str, description: str | None = None) -> Category:
    category = Category(name=name, description=description)
    db.session.add(category)
    db.session.commit()
    return category


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name, Category.id).all()


def create_product(
    name: str,
    base_price_cents: int,
    description: str | None = None,
    category_id: int | None = None,
) -> Product:
    if base_price_cents <= 0:
        raise ValidationError("base_price must be > 0")

    if category_id is not None and not db.session.get(Category, category_id):
        raise NotFoundError("category", category_id)

    product = Product(
        name=name,
        description=description,
        category_id=category_id,
        base_price_cents=base_price_cents,
    )
    db.session.add(product)
    db.session.commit()
    return product


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name, Product.id).all()


# =============================================================================
# VARIANTS
# =============================================================================

def create_product_variant(
    product_id: int,
    variant_name: str,
    sku: str,
    price_cents: int,
    stock_quantity: int = 0,
    low_stock_threshold: int = 0,
    size: str | None = None,
    color: str | None = None,
    type: str | None = None,
) -> ProductVariant:
    """
    Create a sellable variant.

    Raises:
        NotFoundError: product does not exist
        ConflictError: SKU already used by another variant
        ValidationError: non-positive price, negative stock or threshold
    """
    if price_cents <= 0:
        raise ValidationError("price must be > 0")
    if stock_quantity < 0:
        raise ValidationError("stock_quantity must be >= 0")
    if low_stock_threshold < 0:
        raise ValidationError("low_stock_threshold must be >= 0")

    if not db.session.get(Product, product_id):
        raise NotFoundError("product", product_id)

    if db.session.query(ProductVariant.id).filter_by(sku=sku).first():
        raise ConflictError(f"SKU '{sku}' already exists", details={"sku": sku})

    variant = ProductVariant(
        product_id=product_id,
        variant_name=variant_name,
        sku=sku,
        price_cents=price_cents,
        stock_quantity=stock_quantity,
        low_stock_threshold=low_stock_threshold,
        size=size,
        color=color,
        type=type,
    )
    db.session.add(variant)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same SKU
        db.session.rollback()
        raise ConflictError(f"SKU '{sku}' already exists", details={"sku": sku})
    return variant


def list_product_variants() -> list[ProductVariant]:
    return db.session.query(ProductVariant).order_by(ProductVariant.product_id, ProductVariant.id).all()


def get_variant(variant_id: int) -> ProductVariant | None:
    return db.session.get(ProductVariant, variant_id)


def get_low_stock_variants() -> list[ProductVariant]:
    """Variants where stock_quantity <= low_stock_threshold, emptiest first."""
    return (
        db.session.query(ProductVariant)
        .filter(ProductVariant.stock_quantity <= ProductVariant.low_stock_threshold)
        .order_by(ProductVariant.stock_quantity, ProductVariant.id)
        .all()
    )


# =============================================================================
# STOCK CONTROL
# =============================================================================

def _reload_variant(variant_id: int) -> ProductVariant | None:
    return db.session.get(ProductVariant, variant_id, populate_existing=True)


def _apply_stock_delta(variant_id: int, delta: int) -> ProductVariant:
    """
    Atomically add delta to stock if the result stays >= 0.

    Raises NotFoundError / InsufficientStockError when the guarded UPDATE
    matches no row. Does not commit.
    """
    stmt = (
        update(ProductVariant)
        .where(
            ProductVariant.id == variant_id,
            ProductVariant.stock_quantity + delta >= 0,
        )
        .values(
            stock_quantity=ProductVariant.stock_quantity + delta,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    variant = _reload_variant(variant_id)
    if not result.rowcount:
        if variant is None:
            raise NotFoundError("product variant", variant_id)
        raise InsufficientStockError(
            variant_id=variant_id,
            available=variant.stock_quantity,
            requested=-delta,
            name=variant.variant_name,
        )
    return variant


def decrement_stock(variant_id: int, quantity: int) -> ProductVariant:
    """Take quantity out of stock for a sale. Caller commits."""
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    return _apply_stock_delta(variant_id, -quantity)


def restore_stock(variant_id: int, quantity: int) -> ProductVariant:
    """Put quantity back into stock for a refund. Caller commits."""
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    return _apply_stock_delta(variant_id, quantity)


def update_stock(variant_id: int, quantity: int, *, absolute: bool = False) -> ProductVariant:
    """
    Manual stock adjustment.

    absolute=False: quantity is a delta (restock +N, write-off -N).
    absolute=True: quantity is the new on-hand count.

    Raises:
        NotFoundError: variant does not exist
        InsufficientStockError: the resulting stock would be negative
    """
    with unit_of_work():
        if not absolute:
            variant = _apply_stock_delta(variant_id, quantity)
        else:
            variant = _reload_variant(variant_id)
            if variant is None:
                raise NotFoundError("product variant", variant_id)
            if quantity < 0:
                # requested is the target count the caller asked for
                raise InsufficientStockError(
                    variant_id=variant_id,
                    available=variant.stock_quantity,
                    requested=quantity,
                    name=variant.variant_name,
                )
            variant.stock_quantity = quantity
            variant.updated_at = utcnow()

    current_app.logger.info(
        "Stock for variant %s %s %s -> %s",
        variant_id,
        "set to" if absolute else "adjusted by",
        quantity,
        variant.stock_quantity,
    )
    return variant

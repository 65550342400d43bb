# Overview: Flask API routes for categories, products, variants and stock.

"""
Catalog routes.

Reads are open to any authenticated user; writes and stock adjustments
require admin or manager.
"""

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..errors import ServiceError
from ..models import Category, Product, ProductVariant
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    parse_choice,
    parse_int,
    parse_money,
    require_json_object,
    validate_payload,
)
from . import error_response, internal_error

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "category_id"},
    required_on_create={"name"},
)

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "variant_name", "sku", "stock_quantity",
        "low_stock_threshold", "size", "color", "type",
    },
    required_on_create={"product_id", "variant_name", "sku", "stock_quantity", "low_stock_threshold"},
)

STOCK_MODES = ("delta", "absolute")

products_bp = Blueprint("products", __name__, url_prefix="/api")


# =============================================================================
# CATEGORIES
# =============================================================================

@products_bp.post("/categories")
@require_auth
@require_role("admin", "manager")
def create_category_route():
    try:
        payload = require_json_object(request.get_json(silent=True))
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = catalog_service.create_category(patch["name"], patch.get("description"))
        return jsonify({"category": category.to_dict()}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create category")


@products_bp.get("/categories")
@require_auth
def list_categories_route():
    categories = catalog_service.list_categories()
    return jsonify({"categories": [c.to_dict() for c in categories]}), 200


# =============================================================================
# PRODUCTS
# =============================================================================

@products_bp.post("/products")
@require_auth
@require_role("admin", "manager")
def create_product_route():
    """
    Request body:
    {
        "name": "T-Shirt",
        "description": null,
        "category_id": 1,
        "base_price": 19.99
    }
    """
    try:
        payload = dict(require_json_object(request.get_json(silent=True)))
        base_price_cents = parse_money(payload, "base_price", allow_zero=False)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)

        product = catalog_service.create_product(
            name=patch["name"],
            base_price_cents=base_price_cents,
            description=patch.get("description"),
            category_id=patch.get("category_id"),
        )
        return jsonify({"product": product.to_dict()}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create product")


@products_bp.get("/products")
@require_auth
def list_products_route():
    products = catalog_service.list_products()
    return jsonify({"products": [p.to_dict() for p in products]}), 200


# =============================================================================
# VARIANTS & STOCK
# =============================================================================

@products_bp.post("/variants")
@require_auth
@require_role("admin", "manager")
def create_variant_route():
    """
    Request body:
    {
        "product_id": 1,
        "variant_name": "Red / M",
        "sku": "TS-RED-M",
        "price": 15.99,
        "stock_quantity": 10,
        "low_stock_threshold": 5,
        "size": "M", "color": "Red", "type": null
    }
    """
    try:
        payload = dict(require_json_object(request.get_json(silent=True)))
        price_cents = parse_money(payload, "price", allow_zero=False)
        patch = validate_payload(model=ProductVariant, payload=payload, policy=VARIANT_POLICY, partial=False)

        variant = catalog_service.create_product_variant(
            product_id=patch["product_id"],
            variant_name=patch["variant_name"],
            sku=patch["sku"],
            price_cents=price_cents,
            stock_quantity=patch["stock_quantity"],
            low_stock_threshold=patch["low_stock_threshold"],
            size=patch.get("size"),
            color=patch.get("color"),
            type=patch.get("type"),
        )
        return jsonify({"variant": variant.to_dict()}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create product variant")


@products_bp.get("/variants")
@require_auth
def list_variants_route():
    variants = catalog_service.list_product_variants()
    return jsonify({"variants": [v.to_dict() for v in variants]}), 200


@products_bp.get("/variants/low-stock")
@require_auth
def low_stock_variants_route():
    variants = catalog_service.get_low_stock_variants()
    return jsonify({"variants": [v.to_dict() for v in variants]}), 200


@products_bp.get("/variants/<int:variant_id>")
@require_auth
def get_variant_route(variant_id: int):
    variant = catalog_service.get_variant(variant_id)
    if not variant:
        return jsonify({"error": "Product variant not found"}), 404
    return jsonify({"variant": variant.to_dict()}), 200


@products_bp.post("/variants/<int:variant_id>/stock")
@require_auth
@require_role("admin", "manager")
def update_stock_route(variant_id: int):
    """
    Adjust stock.

    Request body:
    {
        "quantity": -3,      // delta by default
        "mode": "delta"      // or "absolute" to set the on-hand count
    }

    Returns 409 if the result would be negative.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        quantity = parse_int(data.get("quantity"), "quantity")
        mode = parse_choice(data.get("mode", "delta"), "mode", STOCK_MODES)
        if mode == "delta" and quantity == 0:
            raise ValidationError("quantity must be non-zero for a delta adjustment")

        variant = catalog_service.update_stock(variant_id, quantity, absolute=(mode == "absolute"))
        return jsonify({"variant": variant.to_dict()}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update stock")

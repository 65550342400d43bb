# Overview: Flask API routes for sales transactions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import PermissionDeniedError, ServiceError
from ..models import PAYMENT_METHODS, TRANSACTION_STATUSES
from ..services import transaction_service
from ..services.transaction_service import LineItemInput
from ..validation import (
    ValidationError,
    parse_choice,
    parse_int,
    parse_money,
    parse_optional_int,
    require_json_object,
)
from . import error_response, internal_error

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _resolve_cashier_id(raw) -> int:
    """Cashiers always sell as themselves; managers/admins may name a cashier."""
    user = g.current_user
    if raw is None:
        return user.id
    cashier_id = parse_int(raw, "cashier_id")
    if user.role == "cashier" and cashier_id != user.id:
        raise PermissionDeniedError("Cashiers can only record transactions for themselves")
    return cashier_id


def _parse_item(raw, index: int) -> LineItemInput:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")
    item = dict(raw)
    variant_raw = item.get("variant_id", item.get("product_variant_id"))
    return LineItemInput(
        variant_id=parse_int(variant_raw, f"items[{index}].variant_id"),
        quantity=parse_int(item.get("quantity"), f"items[{index}].quantity", minimum=1),
        unit_price_cents=parse_money(item, "unit_price", allow_zero=False),
        discount_cents=parse_money(item, "discount_amount", required=False, default=0),
    )


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    """
    Settle a sale.

    Request body:
    {
        "customer_id": null,
        "cashier_id": 3,                 // defaults to the caller
        "items": [
            {"variant_id": 1, "quantity": 3, "unit_price": 15.99, "discount_amount": 1.00}
        ],
        "payment_method": "cash",
        "payment_amount": 50.00,
        "discount_amount": 2.00,
        "notes": null
    }
    """
    try:
        data = dict(require_json_object(request.get_json(silent=True)))

        items_raw = data.get("items")
        if not isinstance(items_raw, list) or not items_raw:
            raise ValidationError("items must be a non-empty list")
        items = [_parse_item(raw, i) for i, raw in enumerate(items_raw)]

        notes = data.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes must be a string")

        transaction = transaction_service.create_transaction(
            cashier_id=_resolve_cashier_id(data.get("cashier_id")),
            customer_id=parse_optional_int(data.get("customer_id"), "customer_id"),
            items=items,
            payment_method=parse_choice(data.get("payment_method"), "payment_method", PAYMENT_METHODS),
            payment_cents=parse_money(data, "payment_amount", allow_zero=False),
            discount_cents=parse_money(data, "discount_amount", required=False, default=0),
            notes=notes,
            tax_rate_bps=int(current_app.config.get("TAX_RATE_BPS", 0)),
        )
        return jsonify({"transaction": transaction.to_dict()}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create transaction")


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    Query params (all optional): cashier_id, customer_id, status
    """
    try:
        status = request.args.get("status")
        if status is not None:
            status = parse_choice(status, "status", TRANSACTION_STATUSES)

        transactions = transaction_service.get_transactions(
            cashier_id=parse_optional_int(request.args.get("cashier_id"), "cashier_id"),
            customer_id=parse_optional_int(request.args.get("customer_id"), "customer_id"),
            status=status,
        )
        return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list transactions")


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    transaction = transaction_service.get_transaction_by_id(transaction_id)
    if not transaction:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"transaction": transaction.to_dict()}), 200


@transactions_bp.get("/<int:transaction_id>/items")
@require_auth
def get_transaction_items_route(transaction_id: int):
    try:
        items = transaction_service.get_transaction_items(transaction_id)
        return jsonify({"items": [i.to_dict() for i in items]}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load transaction items")


@transactions_bp.post("/<int:transaction_id>/refund")
@require_auth
@require_role("admin", "manager")
def refund_transaction_route(transaction_id: int):
    """
    Refund a completed transaction and restore its stock.

    Returns 409 if the transaction was already refunded.
    """
    try:
        transaction = transaction_service.refund_transaction(transaction_id)
        return jsonify({"transaction": transaction.to_dict()}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to refund transaction")

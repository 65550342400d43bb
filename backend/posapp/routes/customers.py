# Overview: Flask API routes for customer records.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth
from ..errors import ServiceError
from ..models import Customer
from ..services import customer_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_email,
    require_json_object,
)
from . import error_response, internal_error

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("")
@require_auth
def create_customer_route():
    try:
        payload = require_json_object(request.get_json(silent=True))
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        email = patch.get("email") or None

        customer = customer_service.create_customer(
            name=patch["name"],
            email=validate_email(email),
            phone=patch.get("phone") or None,
            address=patch.get("address") or None,
        )
        return jsonify({"customer": customer.to_dict()}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create customer")


@customers_bp.get("")
@require_auth
def list_customers_route():
    customers = customer_service.list_customers()
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    customer = customer_service.get_customer(customer_id)
    if not customer:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.get("/<int:customer_id>/transactions")
@require_auth
def customer_history_route(customer_id: int):
    """Purchase history: transactions newest first, each with its items."""
    try:
        transactions = customer_service.get_customer_purchase_history(customer_id)
        history = []
        for tx in transactions:
            entry = tx.to_dict()
            entry["items"] = [item.to_dict() for item in tx.items]
            history.append(entry)
        return jsonify({"transactions": history}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load customer purchase history")

# Overview: Flask API routes for staff management.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..errors import ServiceError
from ..models import USER_ROLES
from ..services import user_service
from ..validation import (
    ValidationError,
    parse_bool,
    parse_choice,
    require_json_object,
    validate_email,
)
from . import error_response, internal_error

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.post("")
@require_auth
@require_role("admin")
def create_user_route():
    """
    Create a staff account.

    Request body:
    {
        "username": "jdoe",
        "email": "jdoe@example.com",
        "password": "secret1",
        "full_name": "Jane Doe",
        "role": "cashier"
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        missing = [k for k in ("username", "email", "password", "full_name", "role") if not data.get(k)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        user = user_service.create_user(
            username=str(data["username"]),
            email=validate_email(str(data["email"]).strip()),
            password=str(data["password"]),
            full_name=str(data["full_name"]).strip(),
            role=parse_choice(data["role"], "role", USER_ROLES),
        )
        return jsonify({"user": user.to_dict()}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create user")


@users_bp.get("")
@require_auth
@require_role("admin", "manager")
def list_users_route():
    users = user_service.list_users()
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@users_bp.get("/<int:user_id>")
@require_auth
@require_role("admin", "manager")
def get_user_route(user_id: int):
    user = user_service.get_user(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": user.to_dict()}), 200


@users_bp.patch("/<int:user_id>/status")
@require_auth
@require_role("admin")
def update_user_status_route(user_id: int):
    """
    Request body:
    {
        "is_active": false
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        is_active = parse_bool(data.get("is_active"), "is_active")

        user = user_service.update_user_status(user_id, is_active)
        return jsonify({"user": user.to_dict()}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update user status")

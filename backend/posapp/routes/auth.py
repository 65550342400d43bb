# Overview: Flask API routes for login, logout and the current user.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import auth_service
from ..validation import ValidationError, require_json_object
from . import error_response, internal_error

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Request body:
    {
        "username": "cashier",
        "password": "secret1"
    }

    Returns the user and an opaque bearer token.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        username = data.get("username")
        password = data.get("password")

        if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
            raise ValidationError("username and password required")

        user, token = auth_service.login(username, password)
        return jsonify({"user": user.to_dict(), "token": token}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to login user")


@auth_bp.get("/me")
@require_auth
def current_user_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        auth_service.logout(g.token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        return internal_error("Failed to logout user")

# Overview: Shared helpers for API route modules.

from flask import current_app, jsonify

from ..errors import ServiceError


def error_response(exc: ServiceError):
    return jsonify(exc.to_dict()), exc.status_code


def internal_error(message: str):
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500

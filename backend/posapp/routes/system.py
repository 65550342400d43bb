# Overview: Flask API routes for health checks.

from flask import Blueprint, jsonify

from posapp.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    return jsonify({"status": "ok", "timestamp": to_utc_z(utcnow())}), 200

# Overview: Flask API routes for cashier shifts.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..errors import PermissionDeniedError, ServiceError
from ..services import shift_service
from ..validation import (
    parse_money,
    parse_optional_int,
    require_json_object,
)
from . import error_response, internal_error

shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


def _cashier_or_caller(raw) -> int:
    cashier_id = parse_optional_int(raw, "cashier_id")
    return g.current_user.id if cashier_id is None else cashier_id


def _ensure_can_act_for(cashier_id: int) -> None:
    user = g.current_user
    if user.role == "cashier" and cashier_id != user.id:
        raise PermissionDeniedError("Cashiers can only manage their own shifts")


@shifts_bp.post("/start")
@require_auth
def start_shift_route():
    """
    Request body:
    {
        "cashier_id": 3,          // defaults to the caller
        "opening_cash": 100.00
    }

    Returns 409 if the cashier already has an open shift.
    """
    try:
        data = dict(require_json_object(request.get_json(silent=True)))
        cashier_id = _cashier_or_caller(data.get("cashier_id"))
        _ensure_can_act_for(cashier_id)
        opening_cash_cents = parse_money(data, "opening_cash")

        shift = shift_service.start_shift(cashier_id, opening_cash_cents)
        return jsonify({"shift": shift.to_dict()}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to start shift")


@shifts_bp.post("/<int:shift_id>/end")
@require_auth
def end_shift_route(shift_id: int):
    """
    Request body:
    {
        "closing_cash": 250.00
    }

    total_sales / transaction_count are recomputed from the shift's
    completed transactions when the shift closes.
    """
    try:
        data = dict(require_json_object(request.get_json(silent=True)))
        closing_cash_cents = parse_money(data, "closing_cash")

        shift = shift_service.get_shift(shift_id)
        if shift is not None:
            _ensure_can_act_for(shift.cashier_id)

        shift = shift_service.end_shift(shift_id, closing_cash_cents)
        return jsonify({"shift": shift.to_dict()}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to end shift")


@shifts_bp.get("/current")
@require_auth
def current_shift_route():
    """Query params: cashier_id (defaults to the caller). shift is null when none is open."""
    try:
        cashier_id = _cashier_or_caller(request.args.get("cashier_id"))
        shift = shift_service.get_current_shift(cashier_id)
        return jsonify({"shift": shift.to_dict() if shift else None}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load current shift")


@shifts_bp.get("")
@require_auth
def shift_history_route():
    """Query params: cashier_id (optional). Most recent first."""
    try:
        cashier_id = parse_optional_int(request.args.get("cashier_id"), "cashier_id")
        if g.current_user.role == "cashier":
            cashier_id = g.current_user.id

        shifts = shift_service.get_shift_history(cashier_id)
        return jsonify({"shifts": [s.to_dict() for s in shifts]}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load shift history")

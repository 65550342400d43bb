# Overview: Flask API routes for read-only sales, profit and inventory reports.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..errors import ServiceError
from ..services import reporting_service
from ..validation import ValidationError, parse_bool, parse_date, parse_int, parse_optional_int
from . import error_response, internal_error

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _date_range():
    start_date = parse_date(request.args.get("start_date"), "start_date")
    end_date = parse_date(request.args.get("end_date"), "end_date")
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    return start_date, end_date


@reports_bp.get("/sales")
@require_auth
@require_role("admin", "manager")
def sales_report_route():
    """
    Query params:
        start_date (YYYY-MM-DD, required)
        end_date (YYYY-MM-DD, required, inclusive)
        cashier_id (optional)
    """
    try:
        start_date, end_date = _date_range()
        cashier_id = parse_optional_int(request.args.get("cashier_id"), "cashier_id")
        report = reporting_service.get_sales_report(start_date, end_date, cashier_id)
        return jsonify({"report": report.to_dict()}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to build sales report")


@reports_bp.get("/top-products")
@require_auth
@require_role("admin", "manager")
def top_products_route():
    try:
        limit = parse_int(request.args.get("limit", 10), "limit", minimum=1)
        rows = reporting_service.get_top_selling_products(min(limit, 100))
        return jsonify({"products": [r.to_dict() for r in rows]}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to build top products report")


@reports_bp.get("/profit")
@require_auth
@require_role("admin", "manager")
def profit_report_route():
    try:
        start_date, end_date = _date_range()
        report = reporting_service.get_profit_report(start_date, end_date)
        return jsonify({"report": report.to_dict()}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to build profit report")


@reports_bp.get("/inventory")
@require_auth
@require_role("admin", "manager")
def inventory_report_route():
    """Query params: low_stock_only (true/false, default false)"""
    try:
        low_stock_only = parse_bool(request.args.get("low_stock_only"), "low_stock_only", default=False)
        rows = reporting_service.get_inventory_report(low_stock_only)
        return jsonify({"variants": [r.to_dict() for r in rows]}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to build inventory report")


@reports_bp.get("/dashboard")
@require_auth
@require_role("admin", "manager")
def dashboard_route():
    try:
        stats = reporting_service.get_dashboard_stats()
        return jsonify({"dashboard": stats.to_dict()}), 200

    except Exception:
        return internal_error("Failed to build dashboard")

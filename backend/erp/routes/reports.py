# backend/erp/routes/reports.py
"""
Stock reporting API routes (ledger-derived).
"""
from flask import Blueprint, jsonify, request

from erp.services import reporting_service
from erp.validation import optional_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.route("/stock", methods=["GET"])
def stock_report():
    """
    Query params:
        warehouse_id: int (optional)
        as_of: YYYY-MM-DD (optional, inclusive)
    """
    rows = reporting_service.stock_report(
        warehouse_id=request.args.get("warehouse_id", type=int),
        as_of=optional_date(request.args.get("as_of"), "as_of"),
    )
    return jsonify(rows), 200


@reports_bp.route("/balances", methods=["GET"])
def balances():
    """
    Query params:
        group_by: item_warehouse (default) | item | warehouse
        warehouse_id, item_id: int (optional filters)
        as_of: YYYY-MM-DD (optional, inclusive)
    """
    rows = reporting_service.balance_report(
        group_by=request.args.get("group_by", "item_warehouse"),
        warehouse_id=request.args.get("warehouse_id", type=int),
        item_id=request.args.get("item_id", type=int),
        as_of=optional_date(request.args.get("as_of"), "as_of"),
    )
    return jsonify(rows), 200

# backend/erp/routes/production.py
"""
Production run API routes.
"""
from flask import Blueprint, jsonify, request

from erp.services import production_service
from erp.services.document_service import get_document, list_documents


production_bp = Blueprint("production", __name__, url_prefix="/api/production")


@production_bp.route("", methods=["GET"])
def list_production_runs():
    include_deleted = request.args.get("include_deleted", "false").lower() == "true"
    runs = list_documents("PRODUCTION", include_deleted=include_deleted)
    return jsonify([r.to_dict(include_lines=False) for r in runs]), 200


@production_bp.route("/<int:run_id>", methods=["GET"])
def get_production_run(run_id: int):
    return jsonify(get_document("PRODUCTION", run_id).to_dict()), 200


@production_bp.route("", methods=["POST"])
def create_production_run():
    """
    Record a production run.

    Request body:
    {
        "production_date": "YYYY-MM-DD",
        "output_item_id": int,
        "output_quantity": number,
        "warehouse_id": int,
        "batch_count": int (optional),
        "consumptions": [{"item_id": int, "actual_qty": number, "standard_qty": number,
                          "variance": number, "opening_stock": number, "remarks": str}]
    }
    """
    run = production_service.create_production_run(request.get_json(silent=True) or {})
    return jsonify(run.to_dict()), 201


@production_bp.route("/<int:run_id>", methods=["PUT"])
def update_production_run(run_id: int):
    run = production_service.update_production_run(run_id, request.get_json(silent=True) or {})
    return jsonify(run.to_dict()), 200


@production_bp.route("/<int:run_id>", methods=["DELETE"])
def delete_production_run(run_id: int):
    production_service.delete_production_run(run_id)
    return jsonify({"message": "Production run moved to trash and stock reversed"}), 200

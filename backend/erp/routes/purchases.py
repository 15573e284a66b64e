# backend/erp/routes/purchases.py
"""
Purchase API routes.

Errors from the service layer (ValidationError, NotFoundError, ConflictError,
PersistenceError) are turned into JSON by the app-level error handlers.
"""
from flask import Blueprint, jsonify, request

from erp.services import purchase_service
from erp.services.document_service import get_document, list_documents


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.route("", methods=["GET"])
def list_purchases():
    include_deleted = request.args.get("include_deleted", "false").lower() == "true"
    purchases = list_documents("PURCHASE", include_deleted=include_deleted)
    return jsonify([p.to_dict(include_lines=False) for p in purchases]), 200


@purchases_bp.route("/<int:purchase_id>", methods=["GET"])
def get_purchase(purchase_id: int):
    return jsonify(get_document("PURCHASE", purchase_id).to_dict()), 200


@purchases_bp.route("", methods=["POST"])
def create_purchase():
    """
    Create a purchase and post its stock.

    Request body:
    {
        "supplier_id": int,
        "warehouse_id": int,
        "purchase_date": "YYYY-MM-DD",
        "paying_amount": number (optional, upfront payment),
        "due_date": "YYYY-MM-DD" (optional),
        "lines": [{"item_id": int, "quantity": number, "rate": number, "amount": number (optional)}]
    }
    """
    purchase = purchase_service.create_purchase(request.get_json(silent=True) or {})
    return jsonify(purchase.to_dict()), 201


@purchases_bp.route("/<int:purchase_id>", methods=["PUT"])
def update_purchase(purchase_id: int):
    purchase = purchase_service.update_purchase(purchase_id, request.get_json(silent=True) or {})
    return jsonify(purchase.to_dict()), 200


@purchases_bp.route("/<int:purchase_id>", methods=["DELETE"])
def delete_purchase(purchase_id: int):
    purchase_service.delete_purchase(purchase_id)
    return jsonify({"message": "Purchase moved to trash and stock reversed"}), 200

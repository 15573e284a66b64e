# backend/erp/routes/sales.py
"""
Sales API routes.

POST/PUT answer 400 with a "shortfalls" list when stock is insufficient.
"""
from flask import Blueprint, jsonify, request

from erp.services import sales_service
from erp.services.document_service import get_document, list_documents


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.route("", methods=["GET"])
def list_sales():
    include_deleted = request.args.get("include_deleted", "false").lower() == "true"
    sales = list_documents("SALE", include_deleted=include_deleted)
    return jsonify([s.to_dict(include_lines=False) for s in sales]), 200


@sales_bp.route("/<int:sale_id>", methods=["GET"])
def get_sale(sale_id: int):
    return jsonify(get_document("SALE", sale_id).to_dict()), 200


@sales_bp.route("", methods=["POST"])
def create_sale():
    sale = sales_service.create_sale(request.get_json(silent=True) or {})
    return jsonify(sale.to_dict()), 201


@sales_bp.route("/<int:sale_id>", methods=["PUT"])
def update_sale(sale_id: int):
    sale = sales_service.update_sale(sale_id, request.get_json(silent=True) or {})
    return jsonify(sale.to_dict()), 200


@sales_bp.route("/<int:sale_id>", methods=["DELETE"])
def delete_sale(sale_id: int):
    sales_service.delete_sale(sale_id)
    return jsonify({"message": "Sale moved to trash and stock reversed"}), 200

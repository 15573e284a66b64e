# backend/erp/routes/transfers.py
"""
Stock transfer API routes.
"""
from flask import Blueprint, jsonify, request

from erp.services import transfer_service
from erp.services.document_service import get_document, list_documents


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/stock-transfers")


@transfers_bp.route("", methods=["GET"])
def list_transfers():
    include_deleted = request.args.get("include_deleted", "false").lower() == "true"
    transfers = list_documents("TRANSFER", include_deleted=include_deleted)
    return jsonify([t.to_dict(include_lines=False) for t in transfers]), 200


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
def get_transfer(transfer_id: int):
    return jsonify(get_document("TRANSFER", transfer_id).to_dict()), 200


@transfers_bp.route("", methods=["POST"])
def create_transfer():
    """
    Request body:
    {
        "transfer_date": "YYYY-MM-DD",
        "from_warehouse_id": int,
        "to_warehouse_id": int (optional),
        "lines": [{"item_id": int, "quantity": number}]
    }
    """
    transfer = transfer_service.create_transfer(request.get_json(silent=True) or {})
    return jsonify(transfer.to_dict()), 201


@transfers_bp.route("/<int:transfer_id>", methods=["PUT"])
def update_transfer(transfer_id: int):
    transfer = transfer_service.update_transfer(transfer_id, request.get_json(silent=True) or {})
    return jsonify(transfer.to_dict()), 200


@transfers_bp.route("/<int:transfer_id>", methods=["DELETE"])
def delete_transfer(transfer_id: int):
    transfer_service.delete_transfer(transfer_id)
    return jsonify({"message": "Stock transfer moved to trash and stock reversed"}), 200

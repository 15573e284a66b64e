# backend/erp/routes/trash.py
"""
Trash management: list, restore and permanently delete trashed documents.

<doc_type> is PURCHASE, SALE, PRODUCTION or TRANSFER (case-insensitive).
"""
from flask import Blueprint, jsonify

from erp.services import lifecycle_service


trash_bp = Blueprint("trash", __name__, url_prefix="/api/trash")


@trash_bp.route("", methods=["GET"])
def list_trash():
    return jsonify(lifecycle_service.list_trash()), 200


@trash_bp.route("/restore/<doc_type>/<int:doc_id>", methods=["POST"])
def restore(doc_type: str, doc_id: int):
    lifecycle_service.restore_document(doc_type, doc_id)
    return jsonify({"message": "Successfully restored from trash"}), 200


@trash_bp.route("/permanent/<doc_type>/<int:doc_id>", methods=["DELETE"])
def purge(doc_type: str, doc_id: int):
    removed = lifecycle_service.purge_document(doc_type, doc_id)
    return jsonify({"message": "Permanently deleted and history cleaned", **removed}), 200

# backend/erp/routes/payments.py
"""
Supplier and customer payment API routes.

Both resources share one service; the URL picks the side of the books.
"""
from flask import Blueprint, jsonify, request

from erp.services import payment_service


supplier_payments_bp = Blueprint("supplier_payments", __name__, url_prefix="/api/supplier-payments")
customer_payments_bp = Blueprint("customer_payments", __name__, url_prefix="/api/customer-payments")


def _register(bp: Blueprint, side: str) -> None:
    side_info = payment_service.get_side(side)

    @bp.route("", methods=["GET"])
    def list_payments():
        payments = payment_service.list_payments(
            side,
            party_id=request.args.get(side_info.party_attr, type=int),
            doc_id=request.args.get(side_info.link_attr, type=int),
        )
        return jsonify([p.to_dict() for p in payments]), 200

    @bp.route("/<int:payment_id>", methods=["GET"])
    def get_payment(payment_id: int):
        return jsonify(payment_service.get_payment(side, payment_id).to_dict()), 200

    @bp.route("", methods=["POST"])
    def create_payment():
        payment = payment_service.create_payment(side, request.get_json(silent=True) or {})
        return jsonify(payment.to_dict()), 201

    @bp.route("/<int:payment_id>", methods=["PUT"])
    def update_payment(payment_id: int):
        payment = payment_service.update_payment(side, payment_id, request.get_json(silent=True) or {})
        return jsonify(payment.to_dict()), 200

    @bp.route("/<int:payment_id>", methods=["DELETE"])
    def delete_payment(payment_id: int):
        payment_service.delete_payment(side, payment_id)
        return jsonify({"message": f"{side.capitalize()} payment deleted"}), 200


_register(supplier_payments_bp, "supplier")
_register(customer_payments_bp, "customer")

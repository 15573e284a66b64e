# backend/erp/routes/maintenance.py
"""
Maintenance jobs: payment reconciliation, orphan purge and ledger rebuild.

Each job runs in one transaction and answers with a summary of counts.
"""
from flask import Blueprint, jsonify

from erp.services import maintenance_service, rebuild_service, reconciliation_service


maintenance_bp = Blueprint("maintenance", __name__, url_prefix="/api/maintenance")


@maintenance_bp.route("/sync-balances", methods=["POST"])
def sync_balances():
    summary = reconciliation_service.sync_balances()
    return jsonify({
        "message": "Master synchronization complete. Balances are now consistent across all reports and lists.",
        "summary": summary,
    }), 200


@maintenance_bp.route("/sync-stock", methods=["POST"])
def sync_stock():
    removed = maintenance_service.purge_orphan_entries()
    return jsonify({
        "message": "Stock synchronized successfully. Orphaned entries from deleted transactions have been purged.",
        "removed": removed,
    }), 200


@maintenance_bp.route("/rebuild-inventory", methods=["POST"])
def rebuild_inventory():
    summary = rebuild_service.rebuild_inventory()
    return jsonify({"message": "Inventory ledger rebuilt from active documents", "summary": summary}), 200

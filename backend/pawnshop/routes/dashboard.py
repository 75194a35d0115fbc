# Overview: Flask API routes for dashboards; read-only branch analytics.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_operation
from ..services import reporting_service


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
@require_operation("dashboard")
def stats_route():
    return jsonify(reporting_service.dashboard_stats(g.branch_id)), 200


@dashboard_bp.get("/decision-support")
@require_auth
@require_operation("decision")
def decision_support_route():
    return jsonify(reporting_service.decision_support(g.branch_id)), 200


@dashboard_bp.get("/finance")
@require_auth
@require_operation("finance")
def finance_route():
    limit = request.args.get("limit", default=20, type=int)
    return jsonify(reporting_service.finance_summary(g.branch_id, limit=max(1, min(limit, 200)))), 200


@dashboard_bp.get("/auction")
@require_auth
@require_operation("auction")
def auction_route():
    return jsonify(reporting_service.auction_listing(g.branch_id)), 200


@dashboard_bp.get("/vault")
@require_auth
@require_operation("inventory")
def vault_route():
    return jsonify(reporting_service.vault_listing(g.branch_id, request.args.get("category"))), 200

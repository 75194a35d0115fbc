# Overview: Flask API routes for platform administration; branches, their settings and platform settings.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_operation
from ..errors import PawnshopError, error_response
from ..services import activity_service, branch_service, deletion_service


branches_bp = Blueprint("branches", __name__, url_prefix="/api")


@branches_bp.get("/branches")
@require_auth
@require_operation("branches")
def list_branches_route():
    branches = branch_service.list_branches()
    return jsonify({"branches": [b.to_dict() for b in branches]}), 200


@branches_bp.post("/branches")
@require_auth
@require_operation("branches")
def create_branch_route():
    try:
        data = request.get_json(silent=True) or {}
        branch = branch_service.create_branch(
            data.get("name"),
            data.get("location"),
            data.get("owner_email"),
            actor=g.current_user,
        )
        return jsonify({"branch": branch.to_dict()}), 201
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create branch")
        return jsonify({"error": "Internal server error"}), 500


@branches_bp.get("/branches/<int:branch_id>")
@require_auth
@require_operation("branches")
def get_branch_route(branch_id: int):
    try:
        branch = branch_service.require_branch(branch_id)
        payload = branch.to_dict()
        payload["settings"] = branch_service.get_branch_settings(branch.id)
        return jsonify({"branch": payload}), 200
    except PawnshopError as exc:
        return error_response(exc)


@branches_bp.patch("/branches/<int:branch_id>")
@require_auth
@require_operation("branches")
def update_branch_route(branch_id: int):
    try:
        branch = branch_service.update_branch(branch_id, request.get_json(silent=True), actor=g.current_user)
        return jsonify({"branch": branch.to_dict()}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update branch")
        return jsonify({"error": "Internal server error"}), 500


@branches_bp.delete("/branches/<int:branch_id>")
@require_auth
@require_operation("branches")
def delete_branch_route(branch_id: int):
    """Delete a branch and everything it owns."""
    try:
        counts = deletion_service.delete_branch(branch_id, actor=g.current_user)
        return jsonify({"deleted": branch_id, "removed": counts}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to delete branch")
        return jsonify({"error": "Internal server error"}), 500


@branches_bp.post("/branches/<int:branch_id>/suspend")
@require_auth
@require_operation("branches")
def suspend_branch_route(branch_id: int):
    try:
        branch = branch_service.set_branch_active(branch_id, False, actor=g.current_user)
        return jsonify({"branch": branch.to_dict()}), 200
    except PawnshopError as exc:
        return error_response(exc)


@branches_bp.post("/branches/<int:branch_id>/activate")
@require_auth
@require_operation("branches")
def activate_branch_route(branch_id: int):
    try:
        branch = branch_service.set_branch_active(branch_id, True, actor=g.current_user)
        return jsonify({"branch": branch.to_dict()}), 200
    except PawnshopError as exc:
        return error_response(exc)


@branches_bp.get("/branches/<int:branch_id>/settings")
@require_auth
@require_operation("branches")
def get_branch_settings_route(branch_id: int):
    try:
        return jsonify(branch_service.get_branch_settings(branch_id)), 200
    except PawnshopError as exc:
        return error_response(exc)


@branches_bp.put("/branches/<int:branch_id>/settings")
@require_auth
@require_operation("branches")
def update_branch_settings_route(branch_id: int):
    """Body: any of the feature flags, interest_rate_bps, max_interest_rate_bps."""
    try:
        settings = branch_service.update_branch_settings(
            branch_id,
            request.get_json(silent=True),
            actor=g.current_user,
        )
        return jsonify(settings), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update branch settings")
        return jsonify({"error": "Internal server error"}), 500


@branches_bp.post("/branches/<int:branch_id>/invites")
@require_auth
@require_operation("branches")
def create_invite_route(branch_id: int):
    """Invite a Branch Admin. The token is returned once."""
    try:
        data = request.get_json(silent=True) or {}
        invite, token = branch_service.create_admin_invite(
            branch_id,
            data.get("email"),
            data.get("full_name"),
            actor=g.current_user,
        )
        return jsonify({"invite": invite.to_dict(), "token": token}), 201
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create invitation")
        return jsonify({"error": "Internal server error"}), 500


@branches_bp.get("/platform/settings")
@require_auth
@require_operation("system-settings")
def get_platform_settings_route():
    return jsonify(branch_service.get_platform_settings()), 200


@branches_bp.put("/platform/settings")
@require_auth
@require_operation("system-settings")
def update_platform_settings_route():
    """Global kill-switches and the platform interest cap."""
    try:
        settings = branch_service.update_platform_settings(request.get_json(silent=True), actor=g.current_user)
        return jsonify(settings), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update platform settings")
        return jsonify({"error": "Internal server error"}), 500


@branches_bp.get("/platform/activity")
@require_auth
@require_operation("platform-control")
def platform_activity_route():
    branch_id = request.args.get("branch_id", type=int)
    limit = request.args.get("limit", default=50, type=int)
    entries = activity_service.list_activity(branch_id, limit=max(1, min(limit, 500)))
    return jsonify({"activity": [e.to_dict() for e in entries]}), 200

# Overview: Flask API routes for staff operations; branch team management.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_operation
from ..errors import PawnshopError, error_response
from ..services import staff_service


staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.get("")
@require_auth
@require_operation("hr")
def list_staff_route():
    staff = staff_service.list_staff(g.branch_id)
    return jsonify({"staff": [s.to_dict() for s in staff]}), 200


@staff_bp.post("")
@require_auth
@require_operation("hr")
def create_staff_route():
    """
    Add a team member to the current branch.

    Body: full_name, email, credential, role.
    Branch Admins may add Staff, Manager and Owner accounts only.
    """
    try:
        data = request.get_json(silent=True) or {}
        staff = staff_service.create_staff(
            full_name=data.get("full_name"),
            email=data.get("email"),
            credential=data.get("credential"),
            role=data.get("role"),
            branch_id=g.branch_id,
            actor_role=g.role,
            actor=g.current_user,
        )
        return jsonify({"staff": staff.to_dict()}), 201
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create staff member")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.delete("/<int:staff_id>")
@require_auth
@require_operation("hr")
def delete_staff_route(staff_id: int):
    try:
        staff_service.delete_staff(staff_id, branch_id=g.branch_id, actor_role=g.role, actor=g.current_user)
        return jsonify({"deleted": staff_id}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to delete staff member")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.post("/<int:staff_id>/credential")
@require_auth
@require_operation("hr")
def reset_credential_route(staff_id: int):
    try:
        data = request.get_json(silent=True) or {}
        staff = staff_service.reset_credential(
            staff_id,
            data.get("credential"),
            branch_id=g.branch_id,
            actor_role=g.role,
            actor=g.current_user,
        )
        return jsonify({"staff": staff.to_dict()}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to reset credential")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for auth operations; sessions, impersonation and invitations.

"""
Authentication API routes

SECURITY FEATURES:
- bcrypt credential check, sessions as hashed bearer tokens
- Suspended branches cannot sign in
- Impersonation is stored on the session, never trusted from the client
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import PawnshopError, error_response
from ..services import branch_service, permission_service, session_service, staff_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(context) -> dict:
    payload = {
        "staff": context.staff.to_dict(),
        "role": context.role.value,
        "role_label": context.role.label,
        "branch_id": context.branch_id,
        "impersonating": context.impersonating,
        "expires_at": context.session.to_dict()["expires_at"],
    }
    payload.update(permission_service.describe(context))
    return payload


@auth_bp.post("/login")
def login_route():
    """
    Authenticate staff member and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        credential = data.get("credential") or data.get("password")

        if not all([email, credential]):
            return jsonify({"error": "email and credential required", "code": "INVALID_INPUT"}), 400

        staff = staff_service.authenticate(email, credential)
        if not staff:
            current_app.logger.info("Failed login for %s", email)
            return jsonify({"error": "Invalid credentials", "code": "UNAUTHENTICATED"}), 401

        _, token = session_service.create_session(staff)
        context = session_service.validate_session(token)

        payload = _session_payload(context)
        payload["token"] = token
        return jsonify(payload), 200

    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to login staff member")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout staff member")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current staff member, scope and the operations they may use."""
    return jsonify(_session_payload(g.session_context)), 200


@auth_bp.post("/impersonate")
@require_auth
def start_impersonation_route():
    """Super Admin enters a branch as its Branch Admin."""
    try:
        data = request.get_json(silent=True) or {}
        branch_id = data.get("branch_id")
        if not isinstance(branch_id, int) or isinstance(branch_id, bool):
            return jsonify({"error": "branch_id must be an integer", "code": "INVALID_INPUT"}), 400

        context = session_service.start_impersonation(g.session_context, branch_id)
        return jsonify(_session_payload(context)), 200

    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to start impersonation")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.delete("/impersonate")
@require_auth
def stop_impersonation_route():
    try:
        context = session_service.stop_impersonation(g.session_context)
        return jsonify(_session_payload(context)), 200
    except Exception:
        current_app.logger.exception("Failed to stop impersonation")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/invites/accept")
def accept_invite_route():
    """Create a Branch Admin account from an invitation token."""
    try:
        data = request.get_json(silent=True) or {}
        staff = branch_service.accept_admin_invite(data.get("token"), data.get("credential"))
        return jsonify({"staff": staff.to_dict()}), 201

    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to accept invitation")
        return jsonify({"error": "Internal server error"}), 500

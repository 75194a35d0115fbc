# Overview: Request and operation-gate decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import PermissionDenied, error_response
from .services import session_service, permission_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def require_auth(f):
    """
    Require authentication and establish branch context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated Staff object
    - g.role: The parsed Role of the staff member
    - g.branch_id: The branch every query must be scoped to (own branch,
      or the impersonated branch for a Super Admin; None at platform level)
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - Staff account deactivated
    - Branch suspended
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token", "code": "UNAUTHENTICATED"}), 401

        g.current_user = context.staff
        g.role = context.role
        g.branch_id = context.branch_id
        g.session_context = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_operation(operation_code: str):
    """
    Require the session to be allowed to use one gated operation.

    Combines role, impersonation state and the branch's effective
    feature flags (see permission_service).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED"}), 401

            try:
                permission_service.require_operation(g.session_context, operation_code)
            except PermissionDenied as exc:
                return error_response(exc)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_operation(*operation_codes):
    """Require any of the specified operations."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED"}), 401

            context = g.session_context
            flags = permission_service.context_flags(context)
            allowed = any(
                permission_service.is_allowed(context.role, flags, context.impersonating, code)
                for code in operation_codes
            )
            if not allowed or context.branch_id is None:
                return error_response(PermissionDenied(
                    f"Requires any of: {', '.join(operation_codes)}",
                    details={"operations": list(operation_codes)},
                ))

            return f(*args, **kwargs)

        return decorated_function
    return decorator

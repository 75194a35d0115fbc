# Overview: Domain error taxonomy shared by services and routes.

"""
Every failure a caller can act on is one of these. Routes turn them into
JSON responses using status_code and code; the message names the
precondition that failed (e.g. "Ticket TKT-001-0004 is already REDEEMED").
"""


class PawnshopError(Exception):
    """Base class for domain errors."""
    status_code = 400
    code = "ERROR"

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(PawnshopError):
    """Referenced entity does not exist (or is outside the caller's branch)."""
    status_code = 404
    code = "NOT_FOUND"


class InvalidTransition(PawnshopError):
    """Ticket status change not allowed by the lifecycle."""
    status_code = 409
    code = "INVALID_TRANSITION"


class InvalidInput(PawnshopError):
    """Malformed or out-of-range input."""
    status_code = 400
    code = "INVALID_INPUT"


class ReferentialConflict(PawnshopError):
    """Delete would leave rows pointing at a removed parent."""
    status_code = 409
    code = "REFERENTIAL_CONFLICT"


class PermissionDenied(PawnshopError):
    """Role or feature gate rejected the operation."""
    status_code = 403
    code = "PERMISSION_DENIED"


class UpstreamUnavailable(PawnshopError):
    """Datastore could not be reached."""
    status_code = 503
    code = "UPSTREAM_UNAVAILABLE"


def error_response(exc: PawnshopError):
    """JSON response for a domain error, logged at warning level."""
    from flask import current_app, jsonify, request

    current_app.logger.warning("%s %s -> %s: %s", request.method, request.path, exc.code, exc.message)
    return jsonify(exc.to_dict()), exc.status_code

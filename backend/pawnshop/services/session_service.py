# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management with Branch Context

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

MULTI-TENANT: Sessions capture the staff member's branch at creation time.
A Super Admin may additionally impersonate one branch; that choice is
stored on the session row (impersonated_branch_id) so every request sees
the same scope without trusting a client-side flag.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout of SESSION_HOURS (config)
- Revocable on logout, credential reset and branch suspension
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import InvalidInput, PermissionDenied
from ..models import Branch, SessionToken, Staff
from ..permissions import Role, parse_role
from ..time_utils import utcnow
from .activity_service import log_activity


@dataclass
class SessionContext:
    """
    Complete session context returned by validate_session.

    branch_id is the branch every branch-scoped query must filter by:
    the staff member's own branch, or the impersonated branch for a
    Super Admin. It is None for a Super Admin at platform level.
    """
    staff: Staff
    session: SessionToken
    role: Role
    home_branch_id: int | None
    branch_id: int | None
    impersonating: bool


def generate_token() -> str:
    """Return a 64-character hex token (never stored)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike credentials).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(staff: Staff) -> tuple[SessionToken, str]:
    """
    Create a new session for an authenticated staff member.

    Returns (session_record, plaintext_token).
    """
    now = utcnow()
    plaintext_token = generate_token()
    hours = int(current_app.config.get("SESSION_HOURS", 12))

    session = SessionToken(
        staff_id=staff.id,
        branch_id=staff.branch_id,
        impersonated_branch_id=None,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + timedelta(hours=hours),
        is_revoked=False,
    )
    db.session.add(session)
    staff.last_login_at = now
    log_activity("LOGIN", f"{staff.full_name} signed in", actor=staff, branch_id=staff.branch_id, now=now)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, now) -> None:
    session.is_revoked = True
    session.revoked_at = now
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is invalid, expired, or revoked
    - Staff account is deactivated
    - The staff member's branch (or the impersonated branch) is suspended

    Updates last_used_at on successful validation.
    """
    if not token:
        return None
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return None

    if session.expires_at < now:
        return None

    staff = session.staff
    if not staff or not staff.is_active:
        _revoke(session, now)
        return None

    for branch_id in (session.branch_id, session.impersonated_branch_id):
        if branch_id is None:
            continue
        branch = db.session.get(Branch, branch_id)
        if not branch or not branch.is_active:
            _revoke(session, now)
            return None

    try:
        role = parse_role(staff.role)
    except InvalidInput:
        current_app.logger.warning("Staff %s has unrecognized role %r", staff.id, staff.role)
        return None

    session.last_used_at = now
    db.session.commit()

    impersonating = role == Role.SUPER_ADMIN and session.impersonated_branch_id is not None
    return SessionContext(
        staff=staff,
        session=session,
        role=role,
        home_branch_id=session.branch_id,
        branch_id=session.impersonated_branch_id if impersonating else session.branch_id,
        impersonating=impersonating,
    )


def start_impersonation(context: SessionContext, branch_id: int) -> SessionContext:
    """
    Let a Super Admin act inside a branch as its Branch Admin.

    Raises PermissionDenied for anyone else, NotFound/InvalidInput when the
    branch does not exist or is suspended.
    """
    from .branch_service import require_active_branch

    if context.role != Role.SUPER_ADMIN:
        raise PermissionDenied("Only a Super Admin can impersonate a branch")
    branch = require_active_branch(branch_id)

    context.session.impersonated_branch_id = branch.id
    log_activity(
        "IMPERSONATION_STARTED",
        f"{context.staff.full_name} entered {branch.name}",
        actor=context.staff,
        branch_id=branch.id,
    )
    db.session.commit()

    context.branch_id = branch.id
    context.impersonating = True
    return context


def stop_impersonation(context: SessionContext) -> SessionContext:
    if context.session.impersonated_branch_id is None:
        return context
    branch_id = context.session.impersonated_branch_id
    context.session.impersonated_branch_id = None
    log_activity(
        "IMPERSONATION_ENDED",
        f"{context.staff.full_name} left branch {branch_id}",
        actor=context.staff,
        branch_id=branch_id,
    )
    db.session.commit()

    context.branch_id = context.home_branch_id
    context.impersonating = False
    return context


def revoke_session(token: str) -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False
    _revoke(session, utcnow())
    return True


def cleanup_expired_sessions() -> int:
    """Delete sessions that are expired or revoked. Returns count deleted."""
    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(True),
        )
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted

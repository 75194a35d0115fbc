# Overview: Service-layer operations for staff accounts; credentials, creation and removal.

"""
Staff Accounts

WHY: Every ticket, redemption and delete is attributed to a staff member.
Credentials are hashed with bcrypt; plaintext never reaches the database.

MULTI-TENANT: Staff belong to one branch, except Super Admins (branch_id
NULL). Who may manage whom is decided by permissions.can_manage:
Super Admins manage everyone, Branch Admins manage their branch's
non-admin staff.
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import InvalidInput, NotFound, PermissionDenied
from ..models import SessionToken, Staff
from ..permissions import Role, can_manage, parse_role
from ..time_utils import utcnow
from ..validation import require_text
from .activity_service import log_activity
from .concurrency import unit_of_work


MIN_CREDENTIAL_LENGTH = 8


def validate_credential(credential) -> str:
    if not isinstance(credential, str) or len(credential) < MIN_CREDENTIAL_LENGTH:
        raise InvalidInput(f"Credential must be at least {MIN_CREDENTIAL_LENGTH} characters long")
    return credential


def hash_credential(credential) -> str:
    """
    Hash a credential using bcrypt.

    Cost factor comes from BCRYPT_ROUNDS (12 in production).
    """
    credential = validate_credential(credential)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(credential.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_credential(credential: str, credential_hash: str) -> bool:
    if not credential or not credential_hash:
        return False
    try:
        return bcrypt.checkpw(credential.encode("utf-8"), credential_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def authenticate(email, credential) -> Staff | None:
    """
    Return the active staff member for email/credential, or None.

    Staff of a suspended branch cannot sign in.
    """
    if not isinstance(email, str) or not isinstance(credential, str):
        return None
    staff = db.session.query(Staff).filter(Staff.email == email.strip().lower()).first()
    if not staff or not staff.is_active:
        return None
    if not verify_credential(credential, staff.credential_hash):
        return None
    if staff.branch is not None and not staff.branch.is_active:
        return None
    return staff


def list_staff(branch_id: int | None) -> list[Staff]:
    query = db.session.query(Staff)
    if branch_id is None:
        query = query.filter(Staff.branch_id.is_(None))
    else:
        query = query.filter(Staff.branch_id == branch_id)
    return query.order_by(Staff.full_name.asc()).all()


def get_staff_in_branch(staff_id: int, branch_id: int | None) -> Staff:
    """
    Fetch a staff member inside the caller's branch.

    MULTI-TENANT: staff of another branch are reported as not found.
    """
    staff = db.session.get(Staff, staff_id)
    if not staff or staff.branch_id != branch_id:
        raise NotFound(f"Staff member {staff_id} not found")
    return staff


def create_staff(
    *,
    full_name,
    email,
    credential,
    role,
    branch_id: int | None,
    actor_role: Role,
    actor=None,
) -> Staff:
    """
    Create a staff account.

    Raises PermissionDenied when actor_role may not manage the requested
    role, InvalidInput on malformed fields or a duplicate email.
    """
    target_role = parse_role(role)
    if not can_manage(actor_role, target_role):
        raise PermissionDenied(f"{actor_role.label} cannot create {target_role.label} accounts")

    if target_role == Role.SUPER_ADMIN:
        if branch_id is not None:
            raise InvalidInput("Super Admin accounts cannot belong to a branch")
    elif branch_id is None:
        raise InvalidInput(f"{target_role.label} accounts must belong to a branch")

    full_name = require_text(full_name, "full_name", max_length=128)
    email = require_text(email, "email").lower()
    if "@" not in email:
        raise InvalidInput("email must be a valid address")
    if db.session.query(Staff).filter(Staff.email == email).first():
        raise InvalidInput(f"A staff account already uses {email}")

    credential_hash = hash_credential(credential)

    with unit_of_work():
        staff = Staff(
            full_name=full_name,
            email=email,
            credential_hash=credential_hash,
            role=target_role.value,
            branch_id=branch_id,
            is_active=True,
        )
        db.session.add(staff)
        db.session.flush()
        log_activity(
            "STAFF_CREATED",
            f"{staff.full_name} added as {target_role.label}",
            actor=actor,
            branch_id=branch_id,
        )
    return staff


def delete_staff(staff_id: int, *, branch_id: int | None, actor_role: Role, actor=None) -> None:
    """Remove a staff account and its sessions."""
    staff = get_staff_in_branch(staff_id, branch_id)
    if actor is not None and staff.id == actor.id:
        raise InvalidInput("You cannot delete your own account")
    target_role = parse_role(staff.role)
    if not can_manage(actor_role, target_role):
        raise PermissionDenied(f"{actor_role.label} cannot remove {target_role.label} accounts")

    with unit_of_work():
        db.session.query(SessionToken).filter(SessionToken.staff_id == staff.id).delete(
            synchronize_session=False
        )
        name = staff.full_name
        db.session.delete(staff)
        log_activity("STAFF_DELETED", f"{name} removed", actor=actor, branch_id=branch_id)


def reset_credential(
    staff_id: int,
    credential,
    *,
    branch_id: int | None,
    actor_role: Role,
    actor=None,
) -> Staff:
    """
    Set a new credential for a staff member and sign them out everywhere.
    """
    staff = get_staff_in_branch(staff_id, branch_id)
    target_role = parse_role(staff.role)
    is_self = actor is not None and staff.id == actor.id
    if not is_self and not can_manage(actor_role, target_role):
        raise PermissionDenied(f"{actor_role.label} cannot reset {target_role.label} credentials")

    credential_hash = hash_credential(credential)
    now = utcnow()

    with unit_of_work():
        staff.credential_hash = credential_hash
        db.session.query(SessionToken).filter(
            SessionToken.staff_id == staff.id,
            SessionToken.is_revoked.is_(False),
        ).update(
            {SessionToken.is_revoked: True, SessionToken.revoked_at: now},
            synchronize_session=False,
        )
        log_activity("STAFF_CREDENTIAL_RESET", f"Credential reset for {staff.full_name}", actor=actor, branch_id=branch_id)
    return staff

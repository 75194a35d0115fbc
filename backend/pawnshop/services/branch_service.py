# Overview: Service-layer operations for branches (tenants), their settings and platform settings.

"""
Branch (Tenant) Administration

WHY: The Super Admin provisions branches, suspends them, tunes their
feature flags and interest terms, and invites the first Branch Admin.

MULTI-TENANT: Everything here is keyed by branch_id. Branch-scoped
services call require_branch / require_active_branch before touching
branch-owned rows.

SETTINGS MODEL:
- branch_configs holds per-branch values (feature flags, interest terms)
- platform_settings holds global values; a feature flag set to false
  there disables the feature for every branch
- missing flags default to enabled
"""

from __future__ import annotations

import hashlib
import secrets

from flask import current_app

from ..extensions import db
from ..errors import InvalidInput, NotFound
from ..models import AdminInvite, Branch, BranchConfig, PlatformSetting, SessionToken, Staff
from ..permissions import FEATURE_FLAGS, Role
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, optional_text, require_text, validate_payload
from .activity_service import log_activity
from .concurrency import unit_of_work


INTEREST_RATE_KEY = "interest_rate_bps"
MAX_INTEREST_RATE_KEY = "max_interest_rate_bps"

RATE_KEYS = (INTEREST_RATE_KEY, MAX_INTEREST_RATE_KEY)

BRANCH_POLICY = ModelValidationPolicy(
    writable_fields={"name", "location", "owner_email"},
    required_on_create={"name"},
)


# -- Branch records --

def require_branch(branch_id: int) -> Branch:
    branch = db.session.get(Branch, branch_id)
    if not branch:
        raise NotFound(f"Branch {branch_id} not found")
    return branch


def require_active_branch(branch_id: int) -> Branch:
    branch = require_branch(branch_id)
    if not branch.is_active:
        raise InvalidInput(f"Branch {branch.name} is suspended")
    return branch


def list_branches() -> list[Branch]:
    return db.session.query(Branch).order_by(Branch.name.asc()).all()


def create_branch(name, location=None, owner_email=None, *, actor=None) -> Branch:
    name = require_text(name, "name", max_length=120)
    if db.session.query(Branch).filter(Branch.name == name).first():
        raise InvalidInput(f"Branch name already exists: {name}")

    with unit_of_work():
        branch = Branch(
            name=name,
            location=optional_text(location, "location"),
            owner_email=optional_text(owner_email, "owner_email"),
            is_active=True,
        )
        db.session.add(branch)
        db.session.flush()
        log_activity("BRANCH_CREATED", f"Branch {branch.name} created", actor=actor, branch_id=branch.id)
    return branch


def update_branch(branch_id: int, payload: dict, *, actor=None) -> Branch:
    branch = require_branch(branch_id)
    patch = validate_payload(model=Branch, payload=payload, policy=BRANCH_POLICY, partial=True)

    new_name = patch.get("name")
    if new_name and new_name != branch.name:
        clash = db.session.query(Branch).filter(Branch.name == new_name, Branch.id != branch.id).first()
        if clash:
            raise InvalidInput(f"Branch name already exists: {new_name}")

    with unit_of_work():
        for key, value in patch.items():
            setattr(branch, key, value)
        log_activity("BRANCH_UPDATED", f"Branch {branch.name} updated", actor=actor, branch_id=branch.id)
    return branch


def set_branch_active(branch_id: int, active: bool, *, actor=None) -> Branch:
    """
    Suspend or reactivate a branch.

    Suspending revokes every open session bound to the branch, so its
    staff are signed out on their next request.
    """
    branch = require_branch(branch_id)
    now = utcnow()
    with unit_of_work():
        branch.is_active = active
        if not active:
            db.session.query(SessionToken).filter(
                db.or_(
                    SessionToken.branch_id == branch.id,
                    SessionToken.impersonated_branch_id == branch.id,
                ),
                SessionToken.is_revoked.is_(False),
            ).update(
                {SessionToken.is_revoked: True, SessionToken.revoked_at: now},
                synchronize_session=False,
            )
        log_activity(
            "BRANCH_ACTIVATED" if active else "BRANCH_SUSPENDED",
            f"Branch {branch.name} {'activated' if active else 'suspended'}",
            actor=actor,
            branch_id=branch.id,
        )
    return branch


# -- Settings --

def _parse_bool(value, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no", "off"):
        return False
    raise InvalidInput(f"{field} must be true or false")


def _parse_bps(value, field: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        bps = value
    elif isinstance(value, str) and value.strip().isdigit():
        bps = int(value.strip())
    else:
        raise InvalidInput(f"{field} must be an integer number of basis points")
    if bps < 0 or bps > 10000:
        raise InvalidInput(f"{field} must be between 0 and 10000")
    return bps


def _normalize_setting(key: str, value) -> str:
    if key in FEATURE_FLAGS:
        return "true" if _parse_bool(value, key) else "false"
    if key in RATE_KEYS:
        return str(_parse_bps(value, key))
    raise InvalidInput(f"Unknown setting: {key}")


def _stored_flag(raw: str | None) -> bool:
    # Missing or unparseable values fall back to enabled
    if raw is None:
        return True
    return raw.strip().lower() not in ("false", "0", "no", "off")


def _branch_values(branch_id: int) -> dict[str, str]:
    rows = db.session.query(BranchConfig).filter(BranchConfig.branch_id == branch_id).all()
    return {row.key: row.value for row in rows}


def _platform_values() -> dict[str, str]:
    return {row.key: row.value for row in db.session.query(PlatformSetting).all()}


def globally_disabled_features() -> set[str]:
    values = _platform_values()
    return {flag for flag in FEATURE_FLAGS if not _stored_flag(values.get(flag))}


def effective_flags(branch_id: int) -> dict[str, bool]:
    """Branch flag AND NOT globally disabled, for every known flag."""
    branch_values = _branch_values(branch_id)
    disabled = globally_disabled_features()
    return {
        flag: _stored_flag(branch_values.get(flag)) and flag not in disabled
        for flag in FEATURE_FLAGS
    }


def effective_interest_rate_bps(branch_id: int) -> int:
    """
    Interest rate charged on new loans in a branch.

    The branch rate (or the configured default) is capped by the branch
    cap, the platform cap and the configured maximum, whichever is lowest.
    """
    cfg = current_app.config
    branch_values = _branch_values(branch_id)
    platform_values = _platform_values()

    rate = int(branch_values.get(INTEREST_RATE_KEY) or cfg["DEFAULT_INTEREST_RATE_BPS"])
    caps = [int(cfg["MAX_INTEREST_RATE_BPS"])]
    for values in (branch_values, platform_values):
        if values.get(MAX_INTEREST_RATE_KEY):
            caps.append(int(values[MAX_INTEREST_RATE_KEY]))
    return min([rate] + caps)


def get_branch_settings(branch_id: int) -> dict:
    require_branch(branch_id)
    cfg = current_app.config
    branch_values = _branch_values(branch_id)
    return {
        "branch_id": branch_id,
        "features": {flag: _stored_flag(branch_values.get(flag)) for flag in FEATURE_FLAGS},
        "effective_features": effective_flags(branch_id),
        INTEREST_RATE_KEY: int(branch_values.get(INTEREST_RATE_KEY) or cfg["DEFAULT_INTEREST_RATE_BPS"]),
        MAX_INTEREST_RATE_KEY: int(branch_values.get(MAX_INTEREST_RATE_KEY) or cfg["MAX_INTEREST_RATE_BPS"]),
        "effective_interest_rate_bps": effective_interest_rate_bps(branch_id),
    }


def update_branch_settings(branch_id: int, payload: dict, *, actor=None) -> dict:
    require_branch(branch_id)
    if not isinstance(payload, dict) or not payload:
        raise InvalidInput("Settings payload must be a non-empty object")

    normalized = {key: _normalize_setting(key, value) for key, value in payload.items()}

    with unit_of_work():
        existing = {
            row.key: row
            for row in db.session.query(BranchConfig).filter(BranchConfig.branch_id == branch_id).all()
        }
        for key, value in normalized.items():
            row = existing.get(key)
            if row:
                row.value = value
            else:
                db.session.add(BranchConfig(branch_id=branch_id, key=key, value=value))
        log_activity(
            "BRANCH_SETTINGS_UPDATED",
            ", ".join(f"{k}={v}" for k, v in sorted(normalized.items())),
            actor=actor,
            branch_id=branch_id,
        )
    return get_branch_settings(branch_id)


def get_platform_settings() -> dict:
    values = _platform_values()
    return {
        "features": {flag: _stored_flag(values.get(flag)) for flag in FEATURE_FLAGS},
        MAX_INTEREST_RATE_KEY: int(values.get(MAX_INTEREST_RATE_KEY) or current_app.config["MAX_INTEREST_RATE_BPS"]),
    }


def update_platform_settings(payload: dict, *, actor=None) -> dict:
    if not isinstance(payload, dict) or not payload:
        raise InvalidInput("Settings payload must be a non-empty object")
    if INTEREST_RATE_KEY in payload:
        raise InvalidInput(f"{INTEREST_RATE_KEY} is a branch setting")

    normalized = {key: _normalize_setting(key, value) for key, value in payload.items()}

    with unit_of_work():
        existing = {row.key: row for row in db.session.query(PlatformSetting).all()}
        for key, value in normalized.items():
            row = existing.get(key)
            if row:
                row.value = value
            else:
                db.session.add(PlatformSetting(key=key, value=value))
        log_activity(
            "PLATFORM_SETTINGS_UPDATED",
            ", ".join(f"{k}={v}" for k, v in sorted(normalized.items())),
            actor=actor,
        )
    return get_platform_settings()


# -- Branch Admin invitations --

def _hash_invite_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_admin_invite(branch_id: int, email, full_name, *, actor=None) -> tuple[AdminInvite, str]:
    """
    Invite a Branch Admin for a branch.

    Returns (invite, plaintext_token). The token is shown once; only its
    hash is stored.
    """
    branch = require_active_branch(branch_id)
    email = require_text(email, "email").lower()
    full_name = require_text(full_name, "full_name", max_length=128)

    if db.session.query(Staff).filter(Staff.email == email).first():
        raise InvalidInput(f"A staff account already uses {email}")
    pending = db.session.query(AdminInvite).filter(
        AdminInvite.branch_id == branch.id,
        AdminInvite.email == email,
    ).first()
    if pending:
        raise InvalidInput(f"{email} has already been invited to {branch.name}")

    token = secrets.token_hex(32)
    with unit_of_work():
        invite = AdminInvite(
            branch_id=branch.id,
            email=email,
            full_name=full_name,
            token_hash=_hash_invite_token(token),
        )
        db.session.add(invite)
        log_activity("ADMIN_INVITED", f"{email} invited as Branch Admin", actor=actor, branch_id=branch.id)
    return invite, token


def accept_admin_invite(token, credential) -> Staff:
    """Turn a pending invitation into a Branch Admin account."""
    from . import staff_service

    token = require_text(token, "token")
    invite = db.session.query(AdminInvite).filter(
        AdminInvite.token_hash == _hash_invite_token(token)
    ).first()
    if not invite or invite.accepted_at is not None:
        raise NotFound("Invitation not found or already used")

    branch = require_active_branch(invite.branch_id)
    credential_hash = staff_service.hash_credential(credential)

    with unit_of_work():
        staff = Staff(
            full_name=invite.full_name,
            email=invite.email,
            credential_hash=credential_hash,
            role=Role.BRANCH_ADMIN.value,
            branch_id=branch.id,
            is_active=True,
        )
        db.session.add(staff)
        invite.accepted_at = utcnow()
        db.session.flush()
        log_activity("ADMIN_INVITE_ACCEPTED", f"{staff.email} joined as Branch Admin", actor=staff, branch_id=branch.id)
    return staff

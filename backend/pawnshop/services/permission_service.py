# Overview: Service-layer operations for the role and feature-flag gate.

"""
Role-Based Feature Gate

WHY: Every screen and every mutating route is one named operation. Whether
an actor may use it depends on three things only: their role, whether a
Super Admin is impersonating a branch, and the branch's effective feature
flags.

RULES:
- Super Admin, not impersonating: PLATFORM operations only
- Super Admin impersonating: evaluated as Branch Admin, OPERATIONAL only
- everyone else: OPERATIONAL operations listing their role whose feature
  flag (if any) is enabled; missing flags count as enabled

visible_operations is pure and never raises; require_operation is the
enforcing wrapper used by routes.
"""

from __future__ import annotations

from ..errors import InvalidInput, PermissionDenied
from ..permissions import OPERATIONS, OperationScope, Role, parse_role


def _flag_enabled(flags: dict, flag: str | None) -> bool:
    if flag is None:
        return True
    return bool(flags.get(flag, True))


def visible_operations(role, flags=None, impersonating: bool = False, operations=OPERATIONS) -> list:
    """Operations the actor may use, in declaration order."""
    try:
        role = parse_role(role)
    except InvalidInput:
        return []
    if not isinstance(flags, dict):
        flags = {}

    if role == Role.SUPER_ADMIN and not impersonating:
        return [op for op in operations if op.scope == OperationScope.PLATFORM]

    effective_role = Role.BRANCH_ADMIN if role == Role.SUPER_ADMIN else role
    return [
        op
        for op in operations
        if op.scope == OperationScope.OPERATIONAL
        and effective_role in op.roles
        and _flag_enabled(flags, op.feature_flag)
    ]


def menu_operations(role, flags=None, impersonating: bool = False) -> list:
    """Visible operations shown as navigation entries."""
    return [op for op in visible_operations(role, flags, impersonating) if op.in_menu]


def is_allowed(role, flags, impersonating: bool, code: str) -> bool:
    return any(op.code == code for op in visible_operations(role, flags, impersonating))


def context_flags(context) -> dict:
    """Effective feature flags for the branch the session is scoped to."""
    from .branch_service import effective_flags

    if context.branch_id is None:
        return {}
    return effective_flags(context.branch_id)


def require_operation(context, code: str, flags: dict | None = None) -> None:
    """
    Raise PermissionDenied unless the session may use the operation.

    Operational operations also require a branch scope.
    """
    if flags is None:
        flags = context_flags(context)
    if not is_allowed(context.role, flags, context.impersonating, code):
        raise PermissionDenied(
            f"{context.role.label} cannot access {code}",
            details={"operation": code},
        )
    op = next(op for op in OPERATIONS if op.code == code)
    if op.scope == OperationScope.OPERATIONAL and context.branch_id is None:
        raise PermissionDenied(f"{code} requires a branch", details={"operation": code})


def describe(context) -> dict:
    """Visible and menu operation codes for /api/auth/me."""
    flags = context_flags(context)
    visible = visible_operations(context.role, flags, context.impersonating)
    return {
        "operations": [op.code for op in visible],
        "menu": [{"code": op.code, "name": op.name} for op in visible if op.in_menu],
        "features": flags,
    }

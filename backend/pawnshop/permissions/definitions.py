# Overview: All gated operations and the feature flags that switch them.
# Each operation is defined as: (code, name, scope, roles, feature_flag, in_menu)

from __future__ import annotations

from typing import NamedTuple

from .categories import OperationScope
from .roles import Role


class Operation(NamedTuple):
    code: str
    name: str
    scope: str
    roles: frozenset
    feature_flag: str | None = None
    in_menu: bool = True


# -- FEATURE FLAGS --
# Stored per branch in branch_configs; missing means enabled.

CRM_ENABLED = "crm_enabled"
VAULT_ENABLED = "vault_enabled"
FINANCE_ENABLED = "finance_enabled"
HR_ENABLED = "hr_enabled"
AUCTION_ENABLED = "auction_enabled"
DECISION_ENABLED = "decision_enabled"

FEATURE_FLAGS = [
    CRM_ENABLED,
    VAULT_ENABLED,
    FINANCE_ENABLED,
    HR_ENABLED,
    AUCTION_ENABLED,
    DECISION_ENABLED,
]


def _roles(*roles: Role) -> frozenset:
    return frozenset(roles)


# -- PLATFORM --

PLATFORM_OPERATIONS = [
    Operation("platform-control", "Platform Control", OperationScope.PLATFORM, _roles(Role.SUPER_ADMIN)),
    Operation("system-settings", "System Settings", OperationScope.PLATFORM, _roles(Role.SUPER_ADMIN)),
    Operation("branches", "Branches", OperationScope.PLATFORM, _roles(Role.SUPER_ADMIN)),
]


# -- OPERATIONAL (menu) --

OPERATIONAL_OPERATIONS = [
    Operation(
        "dashboard",
        "Dashboard",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.STAFF, Role.MANAGER),
    ),
    Operation(
        "sales",
        "Pawn Intake",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.STAFF),
    ),
    Operation(
        "crm",
        "Customers",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.STAFF),
        CRM_ENABLED,
    ),
    Operation(
        "inventory",
        "Vault",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.MANAGER),
        VAULT_ENABLED,
    ),
    Operation(
        "redemption",
        "Redemption",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.STAFF, Role.MANAGER),
    ),
    Operation(
        "finance",
        "Finance",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.OWNER),
        FINANCE_ENABLED,
    ),
    Operation(
        "hr",
        "Staff",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.MANAGER),
        HR_ENABLED,
    ),
    Operation(
        "auction",
        "Auction",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.MANAGER),
        AUCTION_ENABLED,
    ),
    Operation(
        "decision",
        "Decision Support",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.MANAGER, Role.OWNER),
        DECISION_ENABLED,
    ),
]


# -- OPERATIONAL (actions, not shown in the menu) --

ACTION_OPERATIONS = [
    Operation(
        "customer-delete",
        "Delete Customer",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN),
        CRM_ENABLED,
        in_menu=False,
    ),
    Operation(
        "ticket-delete",
        "Delete Ticket",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN),
        in_menu=False,
    ),
    Operation(
        "forfeiture",
        "Forfeit Tickets",
        OperationScope.OPERATIONAL,
        _roles(Role.BRANCH_ADMIN, Role.MANAGER),
        in_menu=False,
    ),
]


OPERATIONS = PLATFORM_OPERATIONS + OPERATIONAL_OPERATIONS + ACTION_OPERATIONS

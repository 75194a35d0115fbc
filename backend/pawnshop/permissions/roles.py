# Overview: Closed set of staff roles and parsing of external role strings.

from __future__ import annotations

import re
from enum import Enum

from ..errors import InvalidInput


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    BRANCH_ADMIN = "BRANCH_ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    OWNER = "OWNER"

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_LABELS = {
    Role.SUPER_ADMIN: "Super Admin",
    Role.BRANCH_ADMIN: "Branch Admin",
    Role.MANAGER: "Manager",
    Role.STAFF: "Staff",
    Role.OWNER: "Owner",
}

# Spellings seen in staff records and identity-provider claims, after
# upper-casing and removing spaces, dashes and underscores.
ROLE_ALIASES = {
    "SUPERADMIN": Role.SUPER_ADMIN,
    "SUPER": Role.SUPER_ADMIN,
    "BRANCHADMIN": Role.BRANCH_ADMIN,
    "SHOPADMIN": Role.BRANCH_ADMIN,
    "ADMIN": Role.BRANCH_ADMIN,
    "MANAGER": Role.MANAGER,
    "STAFF": Role.STAFF,
    "OWNER": Role.OWNER,
}


def parse_role(value) -> Role:
    """
    Normalize an external role string into a Role.

    Accepts the display labels ("Super Admin"), canonical values
    ("SUPER_ADMIN") and legacy spellings ("super", "shop_admin").
    Raises InvalidInput for anything else.
    """
    if isinstance(value, Role):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput("role is required")
    key = re.sub(r"[\s_\-]+", "", value.strip().upper())
    role = ROLE_ALIASES.get(key)
    if role is None:
        raise InvalidInput(f"Unknown role: {value}")
    return role


def can_manage(actor_role: Role, target_role: Role) -> bool:
    """
    Whether a staff member with actor_role may create, delete or reset
    credentials for one with target_role.

    Super Admins manage everyone; Branch Admins manage the branch's
    non-admin roles only.
    """
    if actor_role == Role.SUPER_ADMIN:
        return True
    if actor_role == Role.BRANCH_ADMIN:
        return target_role in (Role.STAFF, Role.MANAGER, Role.OWNER)
    return False

# Overview: Operation gate package.
# Re-exports all public APIs for short imports.

from .categories import OperationScope
from .roles import Role, ROLE_LABELS, parse_role, can_manage
from .definitions import (
    Operation,
    OPERATIONS,
    PLATFORM_OPERATIONS,
    OPERATIONAL_OPERATIONS,
    ACTION_OPERATIONS,
    FEATURE_FLAGS,
)
from .helpers import (
    get_all_operation_codes,
    get_operations_by_scope,
    get_operation_definition,
    validate_operation_code,
)

__all__ = [
    "OperationScope",
    "Role",
    "ROLE_LABELS",
    "parse_role",
    "can_manage",
    "Operation",
    "OPERATIONS",
    "PLATFORM_OPERATIONS",
    "OPERATIONAL_OPERATIONS",
    "ACTION_OPERATIONS",
    "FEATURE_FLAGS",
    "get_all_operation_codes",
    "get_operations_by_scope",
    "get_operation_definition",
    "validate_operation_code",
]

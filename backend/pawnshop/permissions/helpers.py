# Overview: Utility functions for operation lookups and validation.

from .definitions import OPERATIONS


def get_all_operation_codes():
    """Get list of all operation codes."""
    return [op.code for op in OPERATIONS]


def get_operations_by_scope(scope):
    """Get all operations in a scope."""
    return [op for op in OPERATIONS if op.scope == scope]


def get_operation_definition(code):
    """Get full definition for an operation code."""
    for op in OPERATIONS:
        if op.code == code:
            return {
                "code": op.code,
                "name": op.name,
                "scope": op.scope,
                "roles": sorted(role.value for role in op.roles),
                "feature_flag": op.feature_flag,
                "in_menu": op.in_menu,
            }
    return None


def validate_operation_code(code):
    """Check if an operation code is valid."""
    return code in get_all_operation_codes()

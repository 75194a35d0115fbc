# Overview: Pytest coverage for role parsing and the operation gate.

import pytest

from pawnshop.errors import InvalidInput
from pawnshop.permissions import (
    OPERATIONS,
    OperationScope,
    Role,
    can_manage,
    get_operation_definition,
    get_operations_by_scope,
    parse_role,
    validate_operation_code,
)
from pawnshop.services.permission_service import is_allowed, menu_operations, visible_operations


def _codes(operations):
    return {op.code for op in operations}


class TestParseRole:
    @pytest.mark.parametrize("raw,expected", [
        ("Super Admin", Role.SUPER_ADMIN),
        ("SUPER_ADMIN", Role.SUPER_ADMIN),
        ("superadmin", Role.SUPER_ADMIN),
        ("super", Role.SUPER_ADMIN),
        ("Branch Admin", Role.BRANCH_ADMIN),
        ("BRANCH_ADMIN", Role.BRANCH_ADMIN),
        ("ADMIN", Role.BRANCH_ADMIN),
        ("shop_admin", Role.BRANCH_ADMIN),
        ("Manager", Role.MANAGER),
        ("owner", Role.OWNER),
        ("STAFF", Role.STAFF),
        (Role.STAFF, Role.STAFF),
    ])
    def test_known_spellings(self, raw, expected):
        assert parse_role(raw) == expected

    @pytest.mark.parametrize("raw", ["cashier", "", None, 3])
    def test_unknown_is_rejected(self, raw):
        with pytest.raises(InvalidInput):
            parse_role(raw)

    def test_labels(self):
        assert Role.BRANCH_ADMIN.label == "Branch Admin"


class TestVisibleOperations:
    def test_super_admin_sees_platform_only(self):
        visible = visible_operations(Role.SUPER_ADMIN, {})
        assert _codes(visible) == {"platform-control", "system-settings", "branches"}
        assert all(op.scope == OperationScope.PLATFORM for op in visible)

    def test_impersonating_super_admin_is_branch_admin(self):
        visible = visible_operations("Super Admin", {}, impersonating=True)
        assert _codes(visible) == _codes(visible_operations(Role.BRANCH_ADMIN, {}))
        assert all(op.scope == OperationScope.OPERATIONAL for op in visible)

    def test_staff_defaults(self):
        assert _codes(menu_operations(Role.STAFF, {})) == {"dashboard", "sales", "crm", "redemption"}

    def test_vault_flag_hides_inventory(self):
        for role in Role:
            visible = visible_operations(role, {"vault_enabled": False}, impersonating=True)
            assert "inventory" not in _codes(visible)

    def test_owner_sees_finance_and_decision(self):
        assert _codes(menu_operations(Role.OWNER, {})) == {"finance", "decision"}

    def test_manager(self):
        assert _codes(menu_operations(Role.MANAGER, {})) == {
            "dashboard", "inventory", "redemption", "hr", "auction", "decision",
        }

    def test_branch_admin_flags_off(self):
        flags = {flag: False for flag in (
            "crm_enabled", "vault_enabled", "finance_enabled",
            "hr_enabled", "auction_enabled", "decision_enabled",
        )}
        assert _codes(menu_operations(Role.BRANCH_ADMIN, flags)) == {"dashboard", "sales", "redemption"}
        assert "customer-delete" not in _codes(visible_operations(Role.BRANCH_ADMIN, flags))

    def test_unknown_flags_and_bad_input_never_raise(self):
        assert visible_operations(Role.STAFF, {"nonsense": False})
        assert visible_operations(Role.STAFF, None)
        assert visible_operations("not a role", {}) == []

    def test_action_operations(self):
        assert is_allowed(Role.BRANCH_ADMIN, {}, False, "customer-delete")
        assert is_allowed(Role.MANAGER, {}, False, "forfeiture")
        assert not is_allowed(Role.STAFF, {}, False, "ticket-delete")
        assert not is_allowed(Role.SUPER_ADMIN, {}, False, "sales")

    def test_custom_operation_table(self):
        custom = [op for op in OPERATIONS if op.code == "dashboard"]
        assert _codes(visible_operations(Role.STAFF, {}, operations=custom)) == {"dashboard"}


class TestDefinitions:
    def test_codes_are_unique(self):
        codes = [op.code for op in OPERATIONS]
        assert len(codes) == len(set(codes))

    def test_definition_lookup(self):
        definition = get_operation_definition("inventory")
        assert definition["feature_flag"] == "vault_enabled"
        assert definition["roles"] == ["BRANCH_ADMIN", "MANAGER"]
        assert validate_operation_code("finance")
        assert not validate_operation_code("payroll")

    def test_platform_scope(self):
        codes = _codes(get_operations_by_scope(OperationScope.PLATFORM))
        assert codes == {"platform-control", "system-settings", "branches"}


class TestCanManage:
    def test_super_admin_manages_everyone(self):
        assert all(can_manage(Role.SUPER_ADMIN, role) for role in Role)

    def test_branch_admin_manages_non_admins(self):
        assert can_manage(Role.BRANCH_ADMIN, Role.STAFF)
        assert can_manage(Role.BRANCH_ADMIN, Role.MANAGER)
        assert not can_manage(Role.BRANCH_ADMIN, Role.BRANCH_ADMIN)
        assert not can_manage(Role.BRANCH_ADMIN, Role.SUPER_ADMIN)

    def test_others_manage_nobody(self):
        assert not can_manage(Role.MANAGER, Role.STAFF)
        assert not can_manage(Role.STAFF, Role.STAFF)

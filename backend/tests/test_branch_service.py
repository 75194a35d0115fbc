# Overview: Pytest coverage for branch administration, settings and invitations.

import pytest

from pawnshop.errors import InvalidInput, NotFound
from pawnshop.models import SessionToken, Staff
from pawnshop.permissions import Role
from pawnshop.services import branch_service, session_service


class TestBranches:
    def test_create_and_list(self, db_session):
        branch_service.create_branch("Uptown", "North Ave", "owner@uptown.test")
        branch_service.create_branch("Downtown")
        names = [b.name for b in branch_service.list_branches()]
        assert names == ["Downtown", "Uptown"]

    def test_duplicate_name(self, db_session, branch_a):
        with pytest.raises(InvalidInput):
            branch_service.create_branch("Branch A")

    def test_update_rejects_unknown_fields(self, db_session, branch_a):
        with pytest.raises(InvalidInput):
            branch_service.update_branch(branch_a.id, {"is_active": False})
        updated = branch_service.update_branch(branch_a.id, {"location": "New Place"})
        assert updated.location == "New Place"

    def test_suspend_revokes_sessions(self, db_session, branch_a, staff_a):
        _, token = session_service.create_session(staff_a)

        branch_service.set_branch_active(branch_a.id, False)

        assert session_service.validate_session(token) is None
        assert db_session.query(SessionToken).filter_by(staff_id=staff_a.id, is_revoked=False).count() == 0

        branch_service.set_branch_active(branch_a.id, True)
        assert branch_service.require_active_branch(branch_a.id).is_active is True

    def test_missing_branch(self, db_session):
        with pytest.raises(NotFound):
            branch_service.require_branch(999)


class TestSettings:
    def test_flags_default_to_enabled(self, db_session, branch_a):
        flags = branch_service.effective_flags(branch_a.id)
        assert flags and all(flags.values())

    def test_branch_flag_off(self, db_session, branch_a, branch_b):
        branch_service.update_branch_settings(branch_a.id, {"vault_enabled": False})
        assert branch_service.effective_flags(branch_a.id)["vault_enabled"] is False
        assert branch_service.effective_flags(branch_b.id)["vault_enabled"] is True

    def test_global_kill_switch_overrides_branch(self, db_session, branch_a):
        branch_service.update_branch_settings(branch_a.id, {"auction_enabled": True})
        branch_service.update_platform_settings({"auction_enabled": "false"})
        assert branch_service.effective_flags(branch_a.id)["auction_enabled"] is False
        settings = branch_service.get_branch_settings(branch_a.id)
        assert settings["features"]["auction_enabled"] is True
        assert settings["effective_features"]["auction_enabled"] is False

    def test_platform_interest_cap(self, db_session, branch_a):
        branch_service.update_platform_settings({"max_interest_rate_bps": 300})
        assert branch_service.effective_interest_rate_bps(branch_a.id) == 300

    @pytest.mark.parametrize("payload", [
        {"unknown_key": True},
        {"crm_enabled": "maybe"},
        {"interest_rate_bps": 3.5},
        {"interest_rate_bps": -1},
        {},
    ])
    def test_rejects_bad_settings(self, db_session, branch_a, payload):
        with pytest.raises(InvalidInput):
            branch_service.update_branch_settings(branch_a.id, payload)


class TestInvites:
    def test_invite_and_accept(self, db_session, branch_a):
        invite, token = branch_service.create_admin_invite(branch_a.id, "Boss@A.test", "Boss Person")
        assert invite.email == "boss@a.test"

        staff = branch_service.accept_admin_invite(token, "Password123")

        assert staff.role == Role.BRANCH_ADMIN.value
        assert staff.branch_id == branch_a.id
        with pytest.raises(NotFound):
            branch_service.accept_admin_invite(token, "Password123")

    def test_duplicate_invite(self, db_session, branch_a):
        branch_service.create_admin_invite(branch_a.id, "boss@a.test", "Boss")
        with pytest.raises(InvalidInput):
            branch_service.create_admin_invite(branch_a.id, "boss@a.test", "Boss")

    def test_invite_for_existing_staff_email(self, db_session, branch_a, staff_a):
        with pytest.raises(InvalidInput):
            branch_service.create_admin_invite(branch_a.id, staff_a.email, "Clerk")

    def test_short_credential_keeps_invite_open(self, db_session, branch_a):
        _, token = branch_service.create_admin_invite(branch_a.id, "boss@a.test", "Boss")
        with pytest.raises(InvalidInput):
            branch_service.accept_admin_invite(token, "short")
        assert db_session.query(Staff).filter_by(email="boss@a.test").count() == 0

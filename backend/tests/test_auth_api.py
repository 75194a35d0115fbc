# Overview: Pytest coverage for login, sessions and Super Admin impersonation.

from conftest import DEFAULT_CREDENTIAL, auth_headers, get_auth_token


class TestLogin:
    def test_login_returns_token_and_operations(self, client, staff_a):
        resp = client.post('/api/auth/login', json={'email': staff_a.email, 'credential': DEFAULT_CREDENTIAL})
        assert resp.status_code == 200
        body = resp.json
        assert body['token']
        assert body['role'] == 'STAFF'
        assert set(body['operations']) >= {'dashboard', 'sales', 'crm', 'redemption'}
        assert 'inventory' not in body['operations']

    def test_wrong_credential(self, client, staff_a):
        resp = client.post('/api/auth/login', json={'email': staff_a.email, 'credential': 'nope-nope'})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post('/api/auth/login', json={})
        assert resp.status_code == 400

    def test_suspended_branch_cannot_login(self, client, staff_a, super_headers, branch_a):
        resp = client.post(f'/api/branches/{branch_a.id}/suspend', headers=super_headers)
        assert resp.status_code == 200
        assert get_auth_token(client, staff_a.email) is None

    def test_logout_revokes_token(self, client, staff_headers):
        assert client.post('/api/auth/logout', headers=staff_headers).status_code == 200
        assert client.get('/api/auth/me', headers=staff_headers).status_code == 401

    def test_bad_token(self, client, db_session):
        assert client.get('/api/auth/me', headers=auth_headers('not-a-token')).status_code == 401


class TestMe:
    def test_feature_flags_shape_menu(self, client, staff_a, admin_a, branch_a, super_headers):
        client.put(
            f'/api/branches/{branch_a.id}/settings',
            json={'crm_enabled': False},
            headers=super_headers,
        )
        headers = auth_headers(get_auth_token(client, staff_a.email))
        body = client.get('/api/auth/me', headers=headers).json
        assert 'crm' not in body['operations']
        assert body['features']['crm_enabled'] is False


class TestImpersonation:
    def test_super_admin_platform_scope(self, client, super_headers):
        body = client.get('/api/auth/me', headers=super_headers).json
        assert body['branch_id'] is None
        assert set(body['operations']) == {'platform-control', 'system-settings', 'branches'}

    def test_impersonate_branch(self, client, super_headers, branch_a):
        resp = client.post('/api/auth/impersonate', json={'branch_id': branch_a.id}, headers=super_headers)
        assert resp.status_code == 200
        assert resp.json['impersonating'] is True
        assert resp.json['branch_id'] == branch_a.id
        assert 'branches' not in resp.json['operations']
        assert 'sales' in resp.json['operations']

        # Scope persists on the session
        tickets = client.get('/api/tickets', headers=super_headers)
        assert tickets.status_code == 200
        assert client.get('/api/branches', headers=super_headers).status_code == 403

        resp = client.delete('/api/auth/impersonate', headers=super_headers)
        assert resp.json['impersonating'] is False
        assert client.get('/api/branches', headers=super_headers).status_code == 200

    def test_only_super_admin_can_impersonate(self, client, admin_headers, branch_b):
        resp = client.post('/api/auth/impersonate', json={'branch_id': branch_b.id}, headers=admin_headers)
        assert resp.status_code == 403

    def test_unknown_branch(self, client, super_headers):
        resp = client.post('/api/auth/impersonate', json={'branch_id': 9999}, headers=super_headers)
        assert resp.status_code == 404


class TestInviteAcceptance:
    def test_invite_flow(self, client, super_headers, branch_a):
        resp = client.post(
            f'/api/branches/{branch_a.id}/invites',
            json={'email': 'head@a.test', 'full_name': 'Head Admin'},
            headers=super_headers,
        )
        assert resp.status_code == 201
        token = resp.json['token']

        resp = client.post('/api/auth/invites/accept', json={'token': token, 'credential': 'Password123'})
        assert resp.status_code == 201
        assert resp.json['staff']['role'] == 'BRANCH_ADMIN'

        assert get_auth_token(client, 'head@a.test', 'Password123')

# Overview: Pytest coverage for ticket, customer and staff HTTP endpoints.

from datetime import timedelta

from pawnshop.models import Customer, Staff, Ticket, TicketStatus
from pawnshop.time_utils import utcnow

from conftest import get_auth_token, auth_headers


def _intake(client, headers, **overrides):
    payload = {
        'customer_name': 'Maria Santos',
        'contact_number': '0917-555-0101',
        'category': 'Gold Jewelry',
        'weight': 10.5,
    }
    payload.update(overrides)
    return client.post('/api/tickets', json=payload, headers=headers)


class TestTicketEndpoints:
    def test_estimate(self, client, staff_headers):
        resp = client.post('/api/tickets/estimate', json={'category': 'Gold Jewelry', 'weight': 60}, headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json == {
            'risk_score': 15,
            'base_rate': 3500,
            'recommended_amount': 147000,
            'is_high_risk': False,
        }

    def test_estimate_beyond_lending_limit(self, client, staff_headers):
        resp = client.post('/api/tickets/estimate', json={'category': 'Gold Jewelry', 'weight': 1e30}, headers=staff_headers)
        assert resp.status_code == 400
        assert resp.json['code'] == 'INVALID_INPUT'
        assert 'lending limit' in resp.json['error']

    def test_estimate_rejects_bad_weight(self, client, staff_headers):
        resp = client.post('/api/tickets/estimate', json={'category': 'Gold', 'weight': 'heavy'}, headers=staff_headers)
        assert resp.status_code == 400
        assert resp.json['code'] == 'INVALID_INPUT'

    def test_intake_and_fetch(self, client, staff_headers):
        resp = _intake(client, staff_headers, loan_amount=20000)
        assert resp.status_code == 201
        ticket = resp.json['ticket']
        assert ticket['status'] == 'ACTIVE'
        assert ticket['weight'] == 10.5
        assert ticket['loan_amount'] == 20000.0
        assert ticket['settlement']['total'] == 20750.0

        resp = client.get(f"/api/tickets/{ticket['id']}", headers=staff_headers)
        assert resp.status_code == 200
        body = resp.json['ticket']
        assert body['category'] == 'Gold Jewelry'
        assert body['loan']['principal'] == 20000.0
        assert body['inventory_record']['is_for_auction'] is False

    def test_intake_requires_customer(self, client, staff_headers):
        resp = _intake(client, staff_headers, customer_name=None)
        assert resp.status_code == 400

    def test_redeem_flow(self, client, staff_headers):
        ticket_id = _intake(client, staff_headers, loan_amount=50000).json['ticket']['id']

        quote = client.get(f'/api/tickets/{ticket_id}/settlement', headers=staff_headers)
        assert quote.json['settlement']['total'] == 51800.0

        resp = client.post(f'/api/tickets/{ticket_id}/redeem', headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json['ticket']['status'] == 'REDEEMED'
        assert resp.json['settlement']['interest'] == 1750.0

        again = client.post(f'/api/tickets/{ticket_id}/redeem', headers=staff_headers)
        assert again.status_code == 409
        assert again.json['code'] == 'INVALID_TRANSITION'

    def test_forfeit_and_auction(self, client, staff_headers, manager_headers):
        past = (utcnow() - timedelta(days=45)).isoformat()
        ticket_id = _intake(client, staff_headers, pawn_date=past, loan_amount=1000).json['ticket']['id']

        resp = client.post(f'/api/tickets/{ticket_id}/forfeit', headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json['ticket']['status'] == 'FORFEITED'

        resp = client.post(f'/api/tickets/{ticket_id}/auction', json={}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json['ticket']['status'] == 'AUCTION'
        assert resp.json['inventory_record']['auction_price'] == 1100.0

        listing = client.get('/api/dashboard/auction', headers=manager_headers).json
        assert listing['count'] == 1

    def test_forfeit_before_expiry_conflicts(self, client, staff_headers, manager_headers):
        ticket_id = _intake(client, staff_headers).json['ticket']['id']
        resp = client.post(f'/api/tickets/{ticket_id}/forfeit', headers=manager_headers)
        assert resp.status_code == 409

    def test_forfeit_expired_sweep(self, client, staff_headers, admin_headers):
        past = (utcnow() - timedelta(days=60)).isoformat()
        _intake(client, staff_headers, pawn_date=past)
        _intake(client, staff_headers, customer_name='Fresh Customer')

        resp = client.post('/api/tickets/forfeit-expired', headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json['count'] == 1

        expired = client.get('/api/tickets?status=EXPIRED', headers=staff_headers).json['tickets']
        assert expired == []
        forfeited = client.get('/api/tickets?status=FORFEITED', headers=staff_headers).json['tickets']
        assert len(forfeited) == 1

    def test_delete_ticket(self, client, staff_headers, admin_headers, db_session):
        ticket_id = _intake(client, staff_headers).json['ticket']['id']
        resp = client.delete(f'/api/tickets/{ticket_id}', headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.query(Ticket).filter_by(id=ticket_id).count() == 0
        assert client.get(f'/api/tickets/{ticket_id}', headers=admin_headers).status_code == 404


class TestCustomerEndpoints:
    def test_crud(self, client, staff_headers, admin_headers, db_session):
        resp = client.post('/api/customers', json={'full_name': 'Ana Cruz', 'contact_number': '0918'}, headers=staff_headers)
        assert resp.status_code == 201
        customer_id = resp.json['customer']['id']
        assert resp.json['customer']['loyalty_tier'] == 'Standard'

        dup = client.post('/api/customers', json={'full_name': 'Ana Cruz'}, headers=staff_headers)
        assert dup.status_code == 400

        resp = client.patch(f'/api/customers/{customer_id}', json={'address': 'Cebu City'}, headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json['customer']['address'] == 'Cebu City'

        resp = client.patch(f'/api/customers/{customer_id}', json={'branch_id': 99}, headers=staff_headers)
        assert resp.status_code == 400

        found = client.get('/api/customers?q=ana', headers=staff_headers).json['customers']
        assert [c['id'] for c in found] == [customer_id]

        _intake(client, staff_headers, customer_name=None, customer_id=customer_id)
        _intake(client, staff_headers, customer_name=None, customer_id=customer_id, category='Watches', weight=1)
        detail = client.get(f'/api/customers/{customer_id}', headers=staff_headers).json['customer']
        assert len(detail['tickets']) == 2

        resp = client.delete(f'/api/customers/{customer_id}', headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json['tickets_deleted'] == 2
        assert db_session.query(Customer).filter_by(id=customer_id).count() == 0
        assert db_session.query(Ticket).filter_by(customer_id=customer_id).count() == 0


class TestStaffEndpoints:
    def test_branch_admin_manages_team(self, client, admin_headers, branch_a, db_session):
        resp = client.post('/api/staff', json={
            'full_name': 'New Clerk',
            'email': 'new.clerk@a.test',
            'credential': 'Password123',
            'role': 'Staff',
        }, headers=admin_headers)
        assert resp.status_code == 201
        staff_id = resp.json['staff']['id']
        assert resp.json['staff']['branch_id'] == branch_a.id

        listed = client.get('/api/staff', headers=admin_headers).json['staff']
        assert staff_id in [s['id'] for s in listed]

        resp = client.post(f'/api/staff/{staff_id}/credential', json={'credential': 'Another123'}, headers=admin_headers)
        assert resp.status_code == 200
        assert get_auth_token(client, 'new.clerk@a.test', 'Another123')

        assert client.delete(f'/api/staff/{staff_id}', headers=admin_headers).status_code == 200
        assert db_session.query(Staff).filter_by(id=staff_id).count() == 0

    def test_branch_admin_cannot_create_admins(self, client, admin_headers):
        resp = client.post('/api/staff', json={
            'full_name': 'Another Admin',
            'email': 'admin2@a.test',
            'credential': 'Password123',
            'role': 'Branch Admin',
        }, headers=admin_headers)
        assert resp.status_code == 403

    def test_unknown_role(self, client, admin_headers):
        resp = client.post('/api/staff', json={
            'full_name': 'X',
            'email': 'x@a.test',
            'credential': 'Password123',
            'role': 'Cashier',
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_manager_sees_team_but_cannot_change_it(self, client, manager_headers, staff_a):
        assert client.get('/api/staff', headers=manager_headers).status_code == 200
        resp = client.delete(f'/api/staff/{staff_a.id}', headers=manager_headers)
        assert resp.status_code == 403

    def test_impersonating_super_admin_can_add_branch_admin(self, client, super_headers, branch_a):
        client.post('/api/auth/impersonate', json={'branch_id': branch_a.id}, headers=super_headers)
        resp = client.post('/api/staff', json={
            'full_name': 'Second Admin',
            'email': 'admin2@a.test',
            'credential': 'Password123',
            'role': 'BRANCH_ADMIN',
        }, headers=super_headers)
        assert resp.status_code == 201
        headers = auth_headers(get_auth_token(client, 'admin2@a.test'))
        assert client.get('/api/auth/me', headers=headers).json['branch_id'] == branch_a.id

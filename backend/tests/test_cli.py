# Overview: Pytest coverage for Flask CLI commands.

from datetime import timedelta

from pawnshop.models import Branch, Category, Staff, Ticket, TicketStatus
from pawnshop.permissions import Role
from pawnshop.time_utils import utcnow


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['system', 'init', '--email', 'root@cli.test', '--credential', 'Password123'])
    assert result.exit_code == 0
    assert 'PASS Created Super Admin: root@cli.test' in result.output

    result = runner.invoke(args=['system', 'init', '--email', 'root@cli.test', '--credential', 'Password123'])
    assert 'already exists' in result.output

    db_session.expire_all()
    admins = db_session.query(Staff).filter_by(email='root@cli.test').all()
    assert len(admins) == 1
    assert admins[0].role == Role.SUPER_ADMIN.value
    assert admins[0].branch_id is None
    assert db_session.query(Category).count() == 6


def test_branches_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['branches', 'create', '--name', 'Downtown', '--location', 'Main St'])
    assert result.exit_code == 0
    assert 'Downtown' in runner.invoke(args=['branches', 'list']).output
    assert db_session.query(Branch).filter_by(name='Downtown').count() == 1


def test_forfeit_expired_sweep(app, db_session, branch_a, make_ticket):
    expired = make_ticket(branch_a, pawn_date=utcnow() - timedelta(days=31))
    fresh = make_ticket(branch_a, customer_name='Ana Cruz')

    result = app.test_cli_runner().invoke(args=['tickets', 'forfeit-expired'])
    assert result.exit_code == 0
    assert f'FORFEITED {expired.ticket_number}' in result.output
    assert 'DONE 1 ticket(s) forfeited' in result.output

    db_session.expire_all()
    assert db_session.get(Ticket, expired.id).status == TicketStatus.FORFEITED
    assert db_session.get(Ticket, fresh.id).status == TicketStatus.ACTIVE

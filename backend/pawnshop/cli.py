# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pawnshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init --email root@pawnshop.local --credential "ChangeMe123"
#   Idempotent: creates tables, seeds categories, creates the Super Admin.
# - python -m flask system seed-demo
#   Adds a demo branch with one account per role, customers and tickets.
#
# Branch management (MULTI-TENANT):
# - python -m flask branches list
# - python -m flask branches create --name "Downtown" --location "Main St"
#
# Tickets:
# - python -m flask tickets forfeit-expired [--branch-id 1]
#   Forfeit every ACTIVE ticket past its expiry date (run daily).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired and revoked session tokens.

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .errors import PawnshopError
from .extensions import db
from .models import Branch, Category, Staff, Ticket
from .permissions import Role
from .services import branch_service, session_service, staff_service, ticket_service
from .time_utils import utcnow


DEFAULT_CATEGORIES = [
    "Gold Jewelry",
    "Silver Jewelry",
    "Silver Coins",
    "Watches",
    "Electronics",
    "Appliances",
]


def seed_categories() -> int:
    existing = {name for (name,) in db.session.query(Category.name).all()}
    created = 0
    for name in DEFAULT_CATEGORIES:
        if name not in existing:
            db.session.add(Category(name=name))
            created += 1
    db.session.commit()
    return created


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--email', default='superadmin@pawnshop.local', help='Super Admin email')
@click.option('--name', 'full_name', default='Platform Owner', help='Super Admin name')
@click.option('--credential', default='ChangeMe123', help='Super Admin credential')
@with_appcontext
def init_system(email, full_name, credential):
    """
    Initialize the platform: tables, category reference data and the
    Super Admin account.

    SECURITY: Change the default credential immediately in production!
    """
    click.echo("START Initializing pawnshop platform...")

    db.create_all()
    created = seed_categories()
    click.echo(f"PASS Categories seeded ({created} new)")

    if db.session.query(Staff).filter(Staff.email == email.lower()).first():
        click.echo(f"WARN  Super Admin '{email}' already exists, skipping...")
    else:
        try:
            staff_service.create_staff(
                full_name=full_name,
                email=email,
                credential=credential,
                role=Role.SUPER_ADMIN,
                branch_id=None,
                actor_role=Role.SUPER_ADMIN,
            )
            click.echo(f"PASS Created Super Admin: {email}")
        except PawnshopError as e:
            click.echo(f"FAIL Could not create Super Admin: {e}")

    click.echo("DONE Platform initialized")


@system_group.command('seed-demo')
@click.option('--branch', 'branch_name', default='Demo Branch', help='Demo branch name')
@click.option('--credential', default='Password123', help='Credential for every demo account')
@with_appcontext
def seed_demo(branch_name, credential):
    """Demo branch with one account per operational role and a few tickets."""
    seed_categories()

    branch = db.session.query(Branch).filter(Branch.name == branch_name).first()
    if branch:
        click.echo(f"WARN  Branch '{branch_name}' already exists, skipping...")
        return

    branch = branch_service.create_branch(branch_name, "Demo Street 1", "owner@pawnshop.local")
    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")

    slug = branch.name.lower().replace(" ", "")
    for role in (Role.BRANCH_ADMIN, Role.MANAGER, Role.STAFF, Role.OWNER):
        email = f"{role.value.lower()}@{slug}.local"
        staff_service.create_staff(
            full_name=f"{branch.name} {role.label}",
            email=email,
            credential=credential,
            role=role,
            branch_id=branch.id,
            actor_role=Role.SUPER_ADMIN,
        )
        click.echo(f"PASS Created {role.label}: {email}")

    now = utcnow()
    samples = [
        ("Maria Santos", "Gold Jewelry", 60, "Gold necklace", now),
        ("Jose Rizal", "Silver Coins", 50, "Commemorative coins", now),
        ("Ana Cruz", "Electronics", 1, "Laptop", now - timedelta(days=45)),
    ]
    for customer_name, category, weight, description, pawn_date in samples:
        ticket = ticket_service.create_ticket(
            branch.id,
            category=category,
            weight=weight,
            customer_name=customer_name,
            description=description,
            pawn_date=pawn_date,
        )
        click.echo(f"PASS Created ticket {ticket.ticket_number} for {customer_name}")

    click.echo(f"DONE Demo data ready. Demo credential: {credential}")


@click.group('branches')
def branches_group():
    """Branch (tenant) management commands."""


@branches_group.command('list')
@with_appcontext
def list_branches():
    branches = branch_service.list_branches()
    if not branches:
        click.echo("No branches found.")
        return
    for branch in branches:
        status = "active" if branch.is_active else "suspended"
        tickets = db.session.query(Ticket).filter(Ticket.branch_id == branch.id).count()
        click.echo(f"{branch.id:>4}  {branch.name:<30} {status:<10} tickets={tickets}")


@branches_group.command('create')
@click.option('--name', required=True, help='Branch name')
@click.option('--location', default=None, help='Branch location')
@click.option('--owner-email', default=None, help='Owner contact email')
@with_appcontext
def create_branch(name, location, owner_email):
    try:
        branch = branch_service.create_branch(name, location, owner_email)
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")
    except PawnshopError as e:
        raise click.ClickException(str(e))


@click.group('tickets')
def tickets_group():
    """Ticket lifecycle maintenance commands."""


@tickets_group.command('forfeit-expired')
@click.option('--branch-id', type=int, default=None, help='Limit the sweep to one branch')
@with_appcontext
def forfeit_expired(branch_id):
    """Forfeit every ACTIVE ticket whose expiry date has passed."""
    numbers = ticket_service.forfeit_expired_tickets(branch_id)
    for number in numbers:
        click.echo(f"FORFEITED {number}")
    click.echo(f"DONE {len(numbers)} ticket(s) forfeited")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session token(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(branches_group)
    app.cli.add_command(tickets_group)
    app.cli.add_command(maintenance_group)

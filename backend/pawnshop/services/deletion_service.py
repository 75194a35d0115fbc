# Overview: Service-layer operations for administrative deletes that cascade to dependents.

"""
Cascading Deletion Policy

Children are removed before parents, inside one unit of work:

- ticket:   loan, inventory record, transactions, then the ticket
- customer: the ticket cascade for each of its tickets, then the customer
- branch:   sessions, invitations, staff, settings, ticket sequence, the
            ticket cascade for every branch ticket, customers, then the branch

Any failure rolls back the whole delete. A foreign key violation means a
dependent was missed and surfaces as ReferentialConflict (see
concurrency.unit_of_work). Activity log rows carry plain ids and survive.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import NotFound, ReferentialConflict
from ..models import (
    AdminInvite,
    BranchConfig,
    Category,
    Customer,
    InventoryRecord,
    Loan,
    SessionToken,
    Staff,
    Ticket,
    TicketSequence,
    Transaction,
    Branch,
)
from .activity_service import log_activity
from .branch_service import require_branch
from .concurrency import unit_of_work
from .customer_service import get_customer_in_branch
from .ticket_service import get_ticket_in_branch


def _bulk_delete(query) -> int:
    return query.delete(synchronize_session=False)


def _cascade_tickets(ticket_ids: list[int]) -> int:
    """Delete the given tickets and everything they own."""
    if not ticket_ids:
        return 0
    _bulk_delete(db.session.query(Loan).filter(Loan.ticket_id.in_(ticket_ids)))
    _bulk_delete(db.session.query(InventoryRecord).filter(InventoryRecord.ticket_id.in_(ticket_ids)))
    _bulk_delete(db.session.query(Transaction).filter(Transaction.ticket_id.in_(ticket_ids)))
    return _bulk_delete(db.session.query(Ticket).filter(Ticket.id.in_(ticket_ids)))


def _ticket_ids(*criteria) -> list[int]:
    return [row_id for (row_id,) in db.session.query(Ticket.id).filter(*criteria).all()]


def delete_ticket(ticket_id: int, branch_id: int, *, actor=None) -> None:
    ticket = get_ticket_in_branch(ticket_id, branch_id)
    number = ticket.ticket_number

    with unit_of_work():
        _cascade_tickets([ticket.id])
        log_activity("TICKET_DELETED", f"{number} deleted", actor=actor, branch_id=branch_id)


def delete_customer(customer_id: int, branch_id: int, *, actor=None) -> int:
    """Delete a customer and all their tickets. Returns tickets removed."""
    customer = get_customer_in_branch(customer_id, branch_id)
    name = customer.full_name

    with unit_of_work():
        removed = _cascade_tickets(_ticket_ids(Ticket.customer_id == customer.id))
        _bulk_delete(db.session.query(Customer).filter(Customer.id == customer.id))
        log_activity(
            "CUSTOMER_DELETED",
            f"Customer {name} deleted with {removed} ticket(s)",
            actor=actor,
            branch_id=branch_id,
        )
    return removed


def delete_branch(branch_id: int, *, actor=None) -> dict:
    """Delete a branch and every row it owns. Returns per-table counts."""
    branch = require_branch(branch_id)
    name = branch.name

    with unit_of_work():
        branch_staff_ids = [
            row_id for (row_id,) in db.session.query(Staff.id).filter(Staff.branch_id == branch.id).all()
        ]
        session_filter = db.or_(
            SessionToken.branch_id == branch.id,
            SessionToken.impersonated_branch_id == branch.id,
        )
        if branch_staff_ids:
            session_filter = db.or_(session_filter, SessionToken.staff_id.in_(branch_staff_ids))

        counts = {
            "sessions": _bulk_delete(db.session.query(SessionToken).filter(session_filter)),
            "invites": _bulk_delete(db.session.query(AdminInvite).filter(AdminInvite.branch_id == branch.id)),
            "staff": _bulk_delete(db.session.query(Staff).filter(Staff.branch_id == branch.id)),
            "settings": _bulk_delete(db.session.query(BranchConfig).filter(BranchConfig.branch_id == branch.id)),
        }
        _bulk_delete(db.session.query(TicketSequence).filter(TicketSequence.branch_id == branch.id))
        counts["tickets"] = _cascade_tickets(_ticket_ids(Ticket.branch_id == branch.id))
        counts["customers"] = _bulk_delete(db.session.query(Customer).filter(Customer.branch_id == branch.id))
        _bulk_delete(db.session.query(Branch).filter(Branch.id == branch.id))

        log_activity(
            "BRANCH_DELETED",
            f"Branch {name} deleted ({counts['tickets']} tickets, {counts['customers']} customers)",
            actor=actor,
            branch_id=branch_id,
        )
    return counts


def delete_category(category_id: int, *, actor=None) -> None:
    """Remove a category that no inventory record references."""
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFound(f"Category {category_id} not found")

    in_use = db.session.query(InventoryRecord.id).filter(InventoryRecord.category_id == category.id).count()
    if in_use:
        raise ReferentialConflict(
            f"Category {category.name} is used by {in_use} inventory record(s)",
            details={"inventory_records": in_use},
        )

    with unit_of_work():
        name = category.name
        db.session.delete(category)
        log_activity("CATEGORY_DELETED", f"Category {name} deleted", actor=actor)

# Overview: Service-layer operations for tickets; intake, redemption, forfeiture and auction listing.

"""
Ticket Lifecycle

States: ACTIVE -> REDEEMED | FORFEITED, FORFEITED -> AUCTION.
EXPIRED is a read-only view (ACTIVE past expiry_date) and is never stored.

WHY conditional updates: two clerks can press "redeem" on the same ticket.
Every status change is UPDATE ... WHERE status = :expected; a zero rowcount
means someone else won and the caller gets InvalidTransition.

MULTI-TENANT: Every operation takes the caller's branch_id (from the
session) and tickets of other branches are reported as not found.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidInput, InvalidTransition, NotFound
from ..models import (
    Category,
    Customer,
    InventoryRecord,
    Loan,
    Ticket,
    TicketSequence,
    TicketStatus,
    Transaction,
    TransactionKind,
)
from ..time_utils import is_past, loan_expiry, parse_iso_datetime, utcnow
from ..validation import check_amount_cents, optional_text, parse_positive_number, to_cents
from .activity_service import log_activity
from .branch_service import effective_interest_rate_bps, require_active_branch
from .concurrency import transition_status, unit_of_work
from .customer_service import find_or_create_for_intake, get_customer_in_branch
from .settlement_service import Settlement, interest_cents, settle_cents
from .valuation_service import estimate_loan


LISTABLE_STATUSES = TicketStatus.STORED + (TicketStatus.EXPIRED,)


# -- Numbering --

def next_ticket_number(branch_id: int) -> str:
    """
    Atomically allocate the next ticket number for a branch.

    Format: TKT-<branch id, 3 digits>-<sequence, 4 digits>.
    """
    stmt = (
        update(TicketSequence)
        .where(TicketSequence.branch_id == branch_id)
        .values(next_number=TicketSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(TicketSequence.next_number)
            .filter_by(branch_id=branch_id)
            .scalar()
        )
        number = current - 1
    else:
        try:
            with db.session.begin_nested():
                db.session.add(TicketSequence(branch_id=branch_id, next_number=2))
            number = 1
        except IntegrityError:
            # Another intake created the sequence row first
            db.session.execute(stmt)
            current = (
                db.session.query(TicketSequence.next_number)
                .filter_by(branch_id=branch_id)
                .scalar()
            )
            number = current - 1
    return f"TKT-{branch_id:03d}-{number:04d}"


# -- Reads --

def get_ticket_in_branch(ticket_id: int, branch_id: int) -> Ticket:
    ticket = db.session.get(Ticket, ticket_id)
    if not ticket or ticket.branch_id != branch_id:
        raise NotFound(f"Ticket {ticket_id} not found")
    return ticket


def list_tickets(
    branch_id: int,
    status: str | None = None,
    *,
    customer_id: int | None = None,
    now=None,
) -> list[Ticket]:
    query = db.session.query(Ticket).filter(Ticket.branch_id == branch_id)

    if status:
        status = status.strip().upper()
        if status not in LISTABLE_STATUSES:
            raise InvalidInput(f"status must be one of: {', '.join(LISTABLE_STATUSES)}")
        if status == TicketStatus.EXPIRED:
            query = query.filter(
                Ticket.status == TicketStatus.ACTIVE,
                Ticket.expiry_date < (now or utcnow()),
            )
        else:
            query = query.filter(Ticket.status == status)

    if customer_id is not None:
        query = query.filter(Ticket.customer_id == customer_id)

    return query.order_by(Ticket.pawn_date.desc(), Ticket.id.desc()).all()


def quote_settlement(ticket: Ticket) -> Settlement:
    return settle_cents(
        ticket.loan_amount_cents,
        ticket.interest_rate_bps,
        int(current_app.config["SERVICE_FEE_CENTS"]),
    )


# -- Intake --

def _resolve_category_id(name: str) -> int | None:
    category = db.session.query(Category).filter(Category.name == name).first()
    return category.id if category else None


def _parse_date(value, field: str):
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise InvalidInput(f"{field} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise InvalidInput(f"{field} must be an ISO-8601 datetime")


def create_ticket(
    branch_id: int,
    *,
    category,
    weight,
    loan_amount=None,
    customer_id: int | None = None,
    customer_name=None,
    contact_number=None,
    address=None,
    description=None,
    storage_location=None,
    pawn_date=None,
    expiry_date=None,
    actor=None,
) -> Ticket:
    """
    Pawn an item: one unit of work creates the ticket, its loan, its vault
    record and the disbursement transaction.

    The customer is either an existing customer_id of the branch or is
    resolved by customer_name (reused when the name matches, otherwise
    created). loan_amount defaults to the estimator's recommendation.
    """
    branch = require_active_branch(branch_id)
    valuation = estimate_loan(category, weight)
    grams = parse_positive_number(weight, "weight")
    category = str(category).strip()

    if loan_amount is None:
        loan_cents = check_amount_cents(valuation.recommended_amount * 100, "loan_amount")
    else:
        loan_cents = to_cents(loan_amount, "loan_amount")

    pawn_dt = _parse_date(pawn_date, "pawn_date") or utcnow()
    term_days = int(current_app.config["LOAN_TERM_DAYS"])
    expiry_dt = _parse_date(expiry_date, "expiry_date") or loan_expiry(pawn_dt, term_days)
    if expiry_dt <= pawn_dt:
        raise InvalidInput("expiry_date must be after pawn_date")

    if customer_id is None and customer_name is None:
        raise InvalidInput("customer_id or customer_name is required")
    if customer_id is not None and (not isinstance(customer_id, int) or isinstance(customer_id, bool)):
        raise InvalidInput("customer_id must be an integer")

    rate_bps = effective_interest_rate_bps(branch.id)
    description = optional_text(description, "description")
    storage_location = optional_text(storage_location, "storage_location", max_length=64)

    with unit_of_work():
        if customer_id is not None:
            customer: Customer = get_customer_in_branch(customer_id, branch.id)
        else:
            customer = find_or_create_for_intake(branch.id, customer_name, contact_number, address)

        ticket = Ticket(
            ticket_number=next_ticket_number(branch.id),
            customer_id=customer.id,
            branch_id=branch.id,
            category=category,
            description=description,
            weight=float(grams),
            loan_amount_cents=loan_cents,
            interest_rate_bps=rate_bps,
            is_high_risk=valuation.is_high_risk,
            status=TicketStatus.ACTIVE,
            pawn_date=pawn_dt,
            expiry_date=expiry_dt,
        )
        db.session.add(ticket)
        db.session.flush()

        db.session.add(Loan(
            ticket_id=ticket.id,
            principal_cents=loan_cents,
            interest_cents=interest_cents(loan_cents, rate_bps),
            risk_score=valuation.risk_score,
            status=TicketStatus.ACTIVE,
        ))
        db.session.add(InventoryRecord(
            ticket_id=ticket.id,
            category_id=_resolve_category_id(category),
            storage_location=storage_location,
            is_for_auction=False,
        ))
        db.session.add(Transaction(
            ticket_id=ticket.id,
            branch_id=branch.id,
            kind=TransactionKind.LOAN_DISBURSEMENT,
            amount_cents=loan_cents,
            occurred_at=pawn_dt,
        ))
        log_activity(
            "TICKET_CREATED",
            f"{ticket.ticket_number} issued to {customer.full_name} for {loan_cents / 100:,.2f}",
            actor=actor,
            branch_id=branch.id,
        )

    return ticket


# -- Transitions --

def _current_status(ticket_id: int) -> str | None:
    return db.session.query(Ticket.status).filter(Ticket.id == ticket_id).scalar()


def redeem_ticket(ticket_id: int, branch_id: int, *, actor=None, now=None) -> tuple[Ticket, Settlement]:
    """
    ACTIVE -> REDEEMED.

    The item leaves the vault (inventory record removed) and the settlement
    total is recorded as a REDEMPTION transaction.
    """
    ticket = get_ticket_in_branch(ticket_id, branch_id)
    settlement = quote_settlement(ticket)
    now = now or utcnow()

    with unit_of_work():
        moved = transition_status(
            Ticket,
            ticket.id,
            expected=TicketStatus.ACTIVE,
            values={"status": TicketStatus.REDEEMED, "redeemed_at": now},
        )
        if not moved:
            status = _current_status(ticket.id)
            raise InvalidTransition(
                f"Ticket {ticket.ticket_number} is already {status}",
                details={"status": status},
            )

        db.session.query(InventoryRecord).filter(InventoryRecord.ticket_id == ticket.id).delete(
            synchronize_session=False
        )
        db.session.add(Transaction(
            ticket_id=ticket.id,
            branch_id=branch_id,
            kind=TransactionKind.REDEMPTION,
            amount_cents=settlement.total_cents,
            occurred_at=now,
        ))
        log_activity(
            "TICKET_REDEEMED",
            f"{ticket.ticket_number} redeemed for {settlement.total:,.2f}",
            actor=actor,
            branch_id=branch_id,
            now=now,
        )

    db.session.refresh(ticket)
    return ticket, settlement


def forfeit_ticket(ticket_id: int, branch_id: int, *, actor=None, now=None) -> Ticket:
    """
    ACTIVE (past expiry) -> FORFEITED.

    Forfeiting a FORFEITED ticket is a no-op and keeps the original
    forfeiture_date. The item stays in the vault.
    """
    ticket = get_ticket_in_branch(ticket_id, branch_id)
    now = now or utcnow()

    if ticket.status == TicketStatus.FORFEITED:
        return ticket
    if ticket.status != TicketStatus.ACTIVE:
        raise InvalidTransition(
            f"Ticket {ticket.ticket_number} is {ticket.status} and cannot be forfeited",
            details={"status": ticket.status},
        )
    if not is_past(ticket.expiry_date, now):
        raise InvalidTransition(
            f"Ticket {ticket.ticket_number} has not expired yet",
            details={"expiry_date": ticket.to_dict()["expiry_date"]},
        )

    with unit_of_work():
        moved = transition_status(
            Ticket,
            ticket.id,
            expected=TicketStatus.ACTIVE,
            values={"status": TicketStatus.FORFEITED, "forfeiture_date": now},
        )
        if moved:
            log_activity(
                "TICKET_FORFEITED",
                f"{ticket.ticket_number} forfeited",
                actor=actor,
                branch_id=branch_id,
                now=now,
            )

    db.session.refresh(ticket)
    if ticket.status != TicketStatus.FORFEITED:
        raise InvalidTransition(
            f"Ticket {ticket.ticket_number} is {ticket.status} and cannot be forfeited",
            details={"status": ticket.status},
        )
    return ticket


def forfeit_expired_tickets(branch_id: int | None = None, *, actor=None, now=None) -> list[str]:
    """
    Forfeit every ACTIVE ticket past its expiry date.

    branch_id=None sweeps all branches (CLI). Returns the ticket numbers
    that changed state.
    """
    now = now or utcnow()
    query = db.session.query(Ticket.id, Ticket.ticket_number, Ticket.branch_id).filter(
        Ticket.status == TicketStatus.ACTIVE,
        Ticket.expiry_date < now,
    )
    if branch_id is not None:
        query = query.filter(Ticket.branch_id == branch_id)
    candidates = query.order_by(Ticket.id.asc()).all()

    forfeited: list[str] = []
    with unit_of_work():
        for row_id, number, row_branch_id in candidates:
            moved = transition_status(
                Ticket,
                row_id,
                expected=TicketStatus.ACTIVE,
                values={"status": TicketStatus.FORFEITED, "forfeiture_date": now},
            )
            if not moved:
                continue
            forfeited.append(number)
            log_activity(
                "TICKET_FORFEITED",
                f"{number} forfeited after expiry",
                actor=actor,
                branch_id=row_branch_id,
                now=now,
            )
    return forfeited


def default_auction_price_cents(loan_amount_cents: int) -> int:
    markup_bps = int(current_app.config["AUCTION_MARKUP_BPS"])
    raw = Decimal(loan_amount_cents) * Decimal(markup_bps) / Decimal(10000)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def list_for_auction(ticket_id: int, branch_id: int, auction_price=None, *, actor=None) -> Ticket:
    """
    FORFEITED -> AUCTION.

    auction_price defaults to 110% of the loan amount. The vault record is
    recreated if it went missing.
    """
    ticket = get_ticket_in_branch(ticket_id, branch_id)
    if auction_price is None:
        price_cents = default_auction_price_cents(ticket.loan_amount_cents)
    else:
        price_cents = to_cents(auction_price, "auction_price")

    with unit_of_work():
        moved = transition_status(
            Ticket,
            ticket.id,
            expected=TicketStatus.FORFEITED,
            values={"status": TicketStatus.AUCTION},
        )
        if not moved:
            status = _current_status(ticket.id)
            raise InvalidTransition(
                f"Ticket {ticket.ticket_number} is {status}; only FORFEITED tickets can go to auction",
                details={"status": status},
            )

        record = db.session.query(InventoryRecord).filter(InventoryRecord.ticket_id == ticket.id).first()
        if record is None:
            record = InventoryRecord(
                ticket_id=ticket.id,
                category_id=_resolve_category_id(ticket.category),
            )
            db.session.add(record)
        record.is_for_auction = True
        record.auction_price_cents = price_cents

        log_activity(
            "TICKET_LISTED_FOR_AUCTION",
            f"{ticket.ticket_number} listed at {price_cents / 100:,.2f}",
            actor=actor,
            branch_id=branch_id,
        )

    db.session.refresh(ticket)
    return ticket

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, is_past
from ..validation import cents_to_float


class TicketStatus:
    """Stored ticket states. EXPIRED is computed, never stored."""
    ACTIVE = "ACTIVE"
    REDEEMED = "REDEEMED"
    FORFEITED = "FORFEITED"
    AUCTION = "AUCTION"

    # Read-only view: ACTIVE tickets whose expiry_date has passed
    EXPIRED = "EXPIRED"

    STORED = (ACTIVE, REDEEMED, FORFEITED, AUCTION)


class Ticket(db.Model):
    """
    One pawned item and its loan terms.

    MULTI-TENANT: Tickets belong to exactly one branch and one customer.
    The ticket exclusively owns its Loan, InventoryRecord and Transactions;
    deleting a ticket must remove those first (deletion_service).
    """
    __tablename__ = "tickets"
    __table_args__ = (
        db.CheckConstraint("loan_amount_cents >= 0", name="ck_tickets_loan_amount_nonneg"),
        db.Index("ix_tickets_branch_status", "branch_id", "status"),
        db.Index("ix_tickets_customer_id", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ticket_number = db.Column(db.String(40), nullable=False, unique=True, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)

    category = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    weight = db.Column(db.Float, nullable=True)  # grams

    # Authoritative storage in cents
    loan_amount_cents = db.Column(db.Integer, nullable=False)
    interest_rate_bps = db.Column(db.Integer, nullable=False)
    is_high_risk = db.Column(db.Boolean, nullable=False, default=False)

    status = db.Column(db.String(16), nullable=False, default=TicketStatus.ACTIVE, index=True)

    pawn_date = db.Column(db.DateTime(timezone=True), nullable=False)
    expiry_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    forfeiture_date = db.Column(db.DateTime(timezone=True), nullable=True)
    redeemed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer = db.relationship("Customer", backref=db.backref("tickets", lazy=True))
    branch = db.relationship("Branch", backref=db.backref("tickets", lazy=True))

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} number={self.ticket_number!r} status={self.status}>"

    def is_expired(self, now=None) -> bool:
        return self.status == TicketStatus.ACTIVE and is_past(self.expiry_date, now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticket_number": self.ticket_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer.full_name if self.customer else None,
            "branch_id": self.branch_id,
            "category": self.category,
            "description": self.description,
            "weight": self.weight,
            "loan_amount": cents_to_float(self.loan_amount_cents),
            "loan_amount_cents": self.loan_amount_cents,
            "interest_rate_bps": self.interest_rate_bps,
            "is_high_risk": self.is_high_risk,
            "status": self.status,
            "is_expired": self.is_expired(),
            "pawn_date": to_utc_z(self.pawn_date),
            "expiry_date": to_utc_z(self.expiry_date),
            "forfeiture_date": to_utc_z(self.forfeiture_date) if self.forfeiture_date else None,
            "redeemed_at": to_utc_z(self.redeemed_at) if self.redeemed_at else None,
        }


class Loan(db.Model):
    """
    Loan terms of a ticket, created in the same unit of work as the ticket.

    status records the ticket status at creation time.
    """
    __tablename__ = "loans"
    __table_args__ = (
        db.UniqueConstraint("ticket_id", name="uq_loans_ticket"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ticket_id = db.Column(db.Integer, db.ForeignKey("tickets.id"), nullable=False, index=True)

    principal_cents = db.Column(db.Integer, nullable=False)
    interest_cents = db.Column(db.Integer, nullable=False)
    risk_score = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    ticket = db.relationship("Ticket", backref=db.backref("loan", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticket_id": self.ticket_id,
            "principal": cents_to_float(self.principal_cents),
            "principal_cents": self.principal_cents,
            "interest": cents_to_float(self.interest_cents),
            "interest_cents": self.interest_cents,
            "risk_score": self.risk_score,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionKind:
    LOAN_DISBURSEMENT = "LOAN_DISBURSEMENT"
    REDEMPTION = "REDEMPTION"


class Transaction(db.Model):
    """
    Cash movement tied to a ticket (loan paid out, redemption collected).

    IMMUTABLE: only removed together with the ticket it belongs to.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_branch_occurred", "branch_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ticket_id = db.Column(db.Integer, db.ForeignKey("tickets.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)

    kind = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    ticket = db.relationship("Ticket", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticket_id": self.ticket_id,
            "ticket_number": self.ticket.ticket_number if self.ticket else None,
            "branch_id": self.branch_id,
            "kind": self.kind,
            "amount": cents_to_float(self.amount_cents),
            "amount_cents": self.amount_cents,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class TicketSequence(db.Model):
    """
    Atomic per-branch ticket number sequence.

    Prevents two concurrent intakes from allocating the same ticket number.
    """
    __tablename__ = "ticket_sequences"
    __table_args__ = (
        db.UniqueConstraint("branch_id", name="uq_ticket_sequences_branch"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)

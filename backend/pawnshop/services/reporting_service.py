# Overview: Service-layer operations for dashboards; read-only aggregates per branch.

"""
Dashboards and Analytics

Read-only views for the dashboard, decision support, finance, auction and
vault screens. All figures are scoped to one branch.

WHY degrade instead of fail: these screens are polled. When the datastore
cannot be reached each report returns its zero/empty shape with
"degraded": true and logs a warning, instead of a 500. Only connectivity
errors degrade; schema or query bugs still raise.
"""

from __future__ import annotations

from functools import wraps

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import InterfaceError, OperationalError

from ..extensions import db
from ..models import (
    Customer,
    InventoryRecord,
    Loan,
    Ticket,
    TicketStatus,
    Transaction,
    TransactionKind,
)
from ..time_utils import utcnow
from ..validation import cents_to_float
from .activity_service import list_activity
from .settlement_service import interest_cents


# Share of high-risk items above which the portfolio is flagged
HIGH_RISK_SHARE = 0.20


def _degrades_to(default_factory):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except (OperationalError, InterfaceError) as exc:
                db.session.rollback()
                current_app.logger.warning("%s degraded: datastore unavailable (%s)", fn.__name__, exc)
                result = default_factory()
                result["degraded"] = True
                return result
        return wrapper
    return decorator


def _empty_stats() -> dict:
    return {
        "active_loans_total": 0.0,
        "expected_interest": 0.0,
        "status_counts": {status: 0 for status in TicketStatus.STORED},
        "expired_count": 0,
        "customer_count": 0,
        "inventory_by_category": [],
        "recent_activity": [],
        "degraded": False,
    }


@_degrades_to(_empty_stats)
def dashboard_stats(branch_id: int, *, now=None) -> dict:
    now = now or utcnow()
    result = _empty_stats()

    active = (
        db.session.query(Ticket.loan_amount_cents, Ticket.interest_rate_bps)
        .filter(Ticket.branch_id == branch_id, Ticket.status == TicketStatus.ACTIVE)
        .all()
    )
    result["active_loans_total"] = cents_to_float(sum(amount for amount, _ in active))
    result["expected_interest"] = cents_to_float(sum(interest_cents(amount, bps) for amount, bps in active))

    rows = (
        db.session.query(Ticket.status, func.count(Ticket.id))
        .filter(Ticket.branch_id == branch_id)
        .group_by(Ticket.status)
        .all()
    )
    for status, count in rows:
        result["status_counts"][status] = count

    result["expired_count"] = (
        db.session.query(func.count(Ticket.id))
        .filter(
            Ticket.branch_id == branch_id,
            Ticket.status == TicketStatus.ACTIVE,
            Ticket.expiry_date < now,
        )
        .scalar()
        or 0
    )
    result["customer_count"] = (
        db.session.query(func.count(Customer.id)).filter(Customer.branch_id == branch_id).scalar() or 0
    )

    by_category = (
        db.session.query(Ticket.category, func.count(InventoryRecord.id), func.sum(Ticket.loan_amount_cents))
        .join(InventoryRecord, InventoryRecord.ticket_id == Ticket.id)
        .filter(Ticket.branch_id == branch_id)
        .group_by(Ticket.category)
        .order_by(Ticket.category.asc())
        .all()
    )
    result["inventory_by_category"] = [
        {"category": name, "items": count, "loan_total": cents_to_float(total)}
        for name, count, total in by_category
    ]
    result["recent_activity"] = [entry.to_dict() for entry in list_activity(branch_id, limit=10)]
    return result


def _empty_decision() -> dict:
    return {
        "active_items": [],
        "category_breakdown": [],
        "total_loan_value": 0.0,
        "projected_revenue": 0.0,
        "high_risk_count": 0,
        "risk_level": "Optimal",
        "degraded": False,
    }


@_degrades_to(_empty_decision)
def decision_support(branch_id: int) -> dict:
    """
    Portfolio view of ACTIVE tickets.

    risk_level is "Moderate" when more than 20% of active items are high
    risk, otherwise "Optimal".
    """
    result = _empty_decision()
    tickets = (
        db.session.query(Ticket)
        .filter(Ticket.branch_id == branch_id, Ticket.status == TicketStatus.ACTIVE)
        .order_by(Ticket.pawn_date.desc())
        .all()
    )
    if not tickets:
        return result

    breakdown: dict[str, dict] = {}
    total_cents = 0
    revenue_cents = 0
    high_risk = 0
    for ticket in tickets:
        total_cents += ticket.loan_amount_cents
        revenue_cents += interest_cents(ticket.loan_amount_cents, ticket.interest_rate_bps)
        if ticket.is_high_risk:
            high_risk += 1
        bucket = breakdown.setdefault(ticket.category, {"category": ticket.category, "items": 0, "loan_cents": 0})
        bucket["items"] += 1
        bucket["loan_cents"] += ticket.loan_amount_cents

    result["active_items"] = [
        {
            "ticket_number": t.ticket_number,
            "category": t.category,
            "loan_amount": cents_to_float(t.loan_amount_cents),
            "is_high_risk": t.is_high_risk,
            "expiry_date": t.to_dict()["expiry_date"],
        }
        for t in tickets
    ]
    result["category_breakdown"] = [
        {"category": b["category"], "items": b["items"], "loan_total": cents_to_float(b["loan_cents"])}
        for b in sorted(breakdown.values(), key=lambda b: b["category"])
    ]
    result["total_loan_value"] = cents_to_float(total_cents)
    result["projected_revenue"] = cents_to_float(revenue_cents)
    result["high_risk_count"] = high_risk
    result["risk_level"] = "Moderate" if high_risk > HIGH_RISK_SHARE * len(tickets) else "Optimal"
    return result


def _empty_finance() -> dict:
    return {
        "liquidity": 0.0,
        "disbursed_total": 0.0,
        "collected_total": 0.0,
        "recent_movements": [],
        "degraded": False,
    }


@_degrades_to(_empty_finance)
def finance_summary(branch_id: int, *, limit: int = 20) -> dict:
    """Capital deployed in loans and the latest cash movements."""
    result = _empty_finance()

    liquidity = (
        db.session.query(func.coalesce(func.sum(Loan.principal_cents), 0))
        .join(Ticket, Ticket.id == Loan.ticket_id)
        .filter(Ticket.branch_id == branch_id)
        .scalar()
    )
    result["liquidity"] = cents_to_float(liquidity)

    totals = dict(
        db.session.query(Transaction.kind, func.coalesce(func.sum(Transaction.amount_cents), 0))
        .filter(Transaction.branch_id == branch_id)
        .group_by(Transaction.kind)
        .all()
    )
    result["disbursed_total"] = cents_to_float(totals.get(TransactionKind.LOAN_DISBURSEMENT, 0))
    result["collected_total"] = cents_to_float(totals.get(TransactionKind.REDEMPTION, 0))

    movements = (
        db.session.query(Transaction)
        .filter(Transaction.branch_id == branch_id)
        .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
        .limit(limit)
        .all()
    )
    result["recent_movements"] = [m.to_dict() for m in movements]
    return result


def _empty_listing() -> dict:
    return {"items": [], "count": 0, "degraded": False}


def _listing(rows) -> dict:
    items = []
    for record, ticket in rows:
        item = record.to_dict()
        item["ticket_number"] = ticket.ticket_number
        item["ticket_status"] = ticket.status
        item["category"] = item["category"] or ticket.category
        item["description"] = ticket.description
        item["weight"] = ticket.weight
        item["loan_amount"] = cents_to_float(ticket.loan_amount_cents)
        items.append(item)
    return {"items": items, "count": len(items), "degraded": False}


@_degrades_to(_empty_listing)
def auction_listing(branch_id: int) -> dict:
    rows = (
        db.session.query(InventoryRecord, Ticket)
        .join(Ticket, Ticket.id == InventoryRecord.ticket_id)
        .filter(Ticket.branch_id == branch_id, InventoryRecord.is_for_auction.is_(True))
        .order_by(Ticket.id.asc())
        .all()
    )
    return _listing(rows)


@_degrades_to(_empty_listing)
def vault_listing(branch_id: int, category: str | None = None) -> dict:
    query = (
        db.session.query(InventoryRecord, Ticket)
        .join(Ticket, Ticket.id == InventoryRecord.ticket_id)
        .filter(Ticket.branch_id == branch_id)
    )
    if category:
        query = query.filter(Ticket.category == category)
    return _listing(query.order_by(Ticket.id.asc()).all())

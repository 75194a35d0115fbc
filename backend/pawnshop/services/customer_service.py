# Overview: Service-layer operations for customers; branch-scoped CRM.

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidInput, NotFound
from ..models import Customer
from ..validation import ModelValidationPolicy, optional_text, require_text, validate_payload
from .activity_service import log_activity
from .concurrency import unit_of_work


LOYALTY_TIERS = ("Standard", "Silver", "Gold", "Platinum")

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "contact_number", "address", "loyalty_tier"},
    required_on_create={"full_name"},
)


def _check_tier(patch: dict) -> None:
    tier = patch.get("loyalty_tier")
    if tier is not None and tier not in LOYALTY_TIERS:
        raise InvalidInput(f"loyalty_tier must be one of: {', '.join(LOYALTY_TIERS)}")


def _name_taken(branch_id: int, full_name: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Customer).filter(
        Customer.branch_id == branch_id,
        Customer.full_name == full_name,
    )
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return query.first() is not None


def get_customer_in_branch(customer_id: int, branch_id: int) -> Customer:
    """
    MULTI-TENANT: customers of other branches are reported as not found.
    """
    customer = db.session.get(Customer, customer_id)
    if not customer or customer.branch_id != branch_id:
        raise NotFound(f"Customer {customer_id} not found")
    return customer


def list_customers(branch_id: int, q: str | None = None) -> list[Customer]:
    query = db.session.query(Customer).filter(Customer.branch_id == branch_id)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(
            db.or_(Customer.full_name.ilike(like), Customer.contact_number.ilike(like))
        )
    return query.order_by(Customer.full_name.asc()).all()


def create_customer(branch_id: int, payload: dict, *, actor=None) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    _check_tier(patch)
    if _name_taken(branch_id, patch["full_name"]):
        raise InvalidInput(f"Customer already exists: {patch['full_name']}")

    with unit_of_work():
        customer = Customer(branch_id=branch_id, **patch)
        db.session.add(customer)
        db.session.flush()
        log_activity("CUSTOMER_CREATED", f"Customer {customer.full_name} created", actor=actor, branch_id=branch_id)
    return customer


def update_customer(customer_id: int, branch_id: int, payload: dict, *, actor=None) -> Customer:
    customer = get_customer_in_branch(customer_id, branch_id)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    _check_tier(patch)
    if "full_name" in patch and _name_taken(branch_id, patch["full_name"], exclude_id=customer.id):
        raise InvalidInput(f"Customer already exists: {patch['full_name']}")

    with unit_of_work():
        for key, value in patch.items():
            setattr(customer, key, value)
        log_activity("CUSTOMER_UPDATED", f"Customer {customer.full_name} updated", actor=actor, branch_id=branch_id)
    return customer


def find_or_create_for_intake(branch_id: int, full_name, contact_number=None, address=None) -> Customer:
    """
    Resolve the customer named on an intake form.

    An existing customer with the same full name in the branch is reused and
    their contact details refreshed with whatever the form supplied; otherwise
    a new customer is added. Runs inside the caller's unit of work.
    """
    full_name = require_text(full_name, "customer_name", max_length=128)
    contact_number = optional_text(contact_number, "contact_number", max_length=32)
    address = optional_text(address, "address")

    customer = db.session.query(Customer).filter(
        Customer.branch_id == branch_id,
        Customer.full_name == full_name,
    ).first()

    if customer:
        if contact_number:
            customer.contact_number = contact_number
        if address:
            customer.address = address
        return customer

    customer = Customer(
        branch_id=branch_id,
        full_name=full_name,
        contact_number=contact_number,
        address=address,
    )
    db.session.add(customer)
    db.session.flush()
    return customer

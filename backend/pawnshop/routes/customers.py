# Overview: Flask API routes for customer operations; branch-scoped CRM.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_operation, require_any_operation
from ..errors import PawnshopError, error_response
from ..services import customer_service, deletion_service, ticket_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_any_operation("crm", "sales")
def list_customers_route():
    customers = customer_service.list_customers(g.branch_id, request.args.get("q"))
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@customers_bp.post("")
@require_auth
@require_operation("crm")
def create_customer_route():
    try:
        customer = customer_service.create_customer(
            g.branch_id,
            request.get_json(silent=True),
            actor=g.current_user,
        )
        return jsonify({"customer": customer.to_dict()}), 201
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_any_operation("crm", "sales")
def get_customer_route(customer_id: int):
    """Customer profile with their tickets."""
    try:
        customer = customer_service.get_customer_in_branch(customer_id, g.branch_id)
        tickets = ticket_service.list_tickets(g.branch_id, customer_id=customer.id)
        payload = customer.to_dict()
        payload["tickets"] = [t.to_dict() for t in tickets]
        return jsonify({"customer": payload}), 200
    except PawnshopError as exc:
        return error_response(exc)


@customers_bp.patch("/<int:customer_id>")
@require_auth
@require_operation("crm")
def update_customer_route(customer_id: int):
    try:
        customer = customer_service.update_customer(
            customer_id,
            g.branch_id,
            request.get_json(silent=True),
            actor=g.current_user,
        )
        return jsonify({"customer": customer.to_dict()}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_operation("customer-delete")
def delete_customer_route(customer_id: int):
    """Delete a customer and every ticket they hold."""
    try:
        removed = deletion_service.delete_customer(customer_id, g.branch_id, actor=g.current_user)
        return jsonify({"deleted": customer_id, "tickets_deleted": removed}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500

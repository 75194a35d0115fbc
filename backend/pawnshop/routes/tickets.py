# Overview: Flask API routes for ticket operations; intake, lifecycle transitions and quotes.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_operation, require_any_operation
from ..errors import PawnshopError, error_response
from ..services import deletion_service, ticket_service, valuation_service


tickets_bp = Blueprint("tickets", __name__, url_prefix="/api/tickets")

READ_OPERATIONS = ("sales", "redemption", "inventory", "auction", "crm")


def _ticket_payload(ticket) -> dict:
    payload = ticket.to_dict()
    payload["settlement"] = ticket_service.quote_settlement(ticket).to_dict()
    return payload


@tickets_bp.post("/estimate")
@require_auth
@require_operation("sales")
def estimate_route():
    """Advisory valuation for the intake form."""
    try:
        data = request.get_json(silent=True) or {}
        valuation = valuation_service.estimate_loan(data.get("category"), data.get("weight"))
        return jsonify(valuation.to_dict()), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to estimate loan")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.post("")
@require_auth
@require_operation("sales")
def create_ticket_route():
    """
    Pawn intake.

    Body: category, weight, and either customer_id or customer_name
    (+ contact_number, address). loan_amount defaults to the estimate.
    """
    try:
        data = request.get_json(silent=True) or {}
        ticket = ticket_service.create_ticket(
            g.branch_id,
            category=data.get("category"),
            weight=data.get("weight"),
            loan_amount=data.get("loan_amount"),
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
            contact_number=data.get("contact_number"),
            address=data.get("address"),
            description=data.get("description"),
            storage_location=data.get("storage_location"),
            pawn_date=data.get("pawn_date"),
            expiry_date=data.get("expiry_date"),
            actor=g.current_user,
        )
        return jsonify({"ticket": _ticket_payload(ticket)}), 201

    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create ticket")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.get("")
@require_auth
@require_any_operation(*READ_OPERATIONS)
def list_tickets_route():
    try:
        customer_id = request.args.get("customer_id", type=int)
        tickets = ticket_service.list_tickets(
            g.branch_id,
            request.args.get("status"),
            customer_id=customer_id,
        )
        return jsonify({"tickets": [t.to_dict() for t in tickets]}), 200
    except PawnshopError as exc:
        return error_response(exc)


@tickets_bp.get("/<int:ticket_id>")
@require_auth
@require_any_operation(*READ_OPERATIONS)
def get_ticket_route(ticket_id: int):
    try:
        ticket = ticket_service.get_ticket_in_branch(ticket_id, g.branch_id)
        payload = _ticket_payload(ticket)
        payload["loan"] = ticket.loan.to_dict() if ticket.loan else None
        payload["inventory_record"] = ticket.inventory_record.to_dict() if ticket.inventory_record else None
        return jsonify({"ticket": payload}), 200
    except PawnshopError as exc:
        return error_response(exc)


@tickets_bp.get("/<int:ticket_id>/settlement")
@require_auth
@require_operation("redemption")
def settlement_route(ticket_id: int):
    """Quote the redemption total for a ticket."""
    try:
        ticket = ticket_service.get_ticket_in_branch(ticket_id, g.branch_id)
        return jsonify({
            "ticket_number": ticket.ticket_number,
            "status": ticket.status,
            "settlement": ticket_service.quote_settlement(ticket).to_dict(),
        }), 200
    except PawnshopError as exc:
        return error_response(exc)


@tickets_bp.post("/<int:ticket_id>/redeem")
@require_auth
@require_operation("redemption")
def redeem_route(ticket_id: int):
    try:
        ticket, settlement = ticket_service.redeem_ticket(ticket_id, g.branch_id, actor=g.current_user)
        return jsonify({"ticket": ticket.to_dict(), "settlement": settlement.to_dict()}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to redeem ticket")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.post("/<int:ticket_id>/forfeit")
@require_auth
@require_operation("forfeiture")
def forfeit_route(ticket_id: int):
    try:
        ticket = ticket_service.forfeit_ticket(ticket_id, g.branch_id, actor=g.current_user)
        return jsonify({"ticket": ticket.to_dict()}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to forfeit ticket")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.post("/forfeit-expired")
@require_auth
@require_operation("forfeiture")
def forfeit_expired_route():
    """Forfeit every expired ACTIVE ticket of the branch."""
    try:
        numbers = ticket_service.forfeit_expired_tickets(g.branch_id, actor=g.current_user)
        return jsonify({"forfeited": numbers, "count": len(numbers)}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to forfeit expired tickets")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.post("/<int:ticket_id>/auction")
@require_auth
@require_operation("auction")
def auction_route(ticket_id: int):
    try:
        data = request.get_json(silent=True) or {}
        ticket = ticket_service.list_for_auction(
            ticket_id,
            g.branch_id,
            data.get("auction_price"),
            actor=g.current_user,
        )
        return jsonify({
            "ticket": ticket.to_dict(),
            "inventory_record": ticket.inventory_record.to_dict() if ticket.inventory_record else None,
        }), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to list ticket for auction")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.delete("/<int:ticket_id>")
@require_auth
@require_operation("ticket-delete")
def delete_ticket_route(ticket_id: int):
    try:
        deletion_service.delete_ticket(ticket_id, g.branch_id, actor=g.current_user)
        return jsonify({"deleted": ticket_id}), 200
    except PawnshopError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to delete ticket")
        return jsonify({"error": "Internal server error"}), 500

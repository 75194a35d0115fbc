# Overview: Flask API routes for system operations; health and category reference data.

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from ..decorators import require_auth, require_operation
from ..errors import PawnshopError, error_response
from ..extensions import db
from ..models import Category
from ..services import deletion_service
from ..validation import require_text


system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        return jsonify({"status": "ok", "database": "ok"}), 200
    except DBAPIError:
        current_app.logger.warning("Health check could not reach the database")
        return jsonify({"status": "degraded", "database": "unavailable"}), 503


@system_bp.get("/categories")
@require_auth
def list_categories():
    categories = db.session.query(Category).order_by(Category.name.asc()).all()
    return jsonify({"categories": [c.to_dict() for c in categories]}), 200


@system_bp.post("/categories")
@require_auth
@require_operation("system-settings")
def create_category():
    try:
        data = request.get_json(silent=True) or {}
        name = require_text(data.get("name"), "name", max_length=64)
        if db.session.query(Category).filter(Category.name == name).first():
            return jsonify({"error": f"Category already exists: {name}", "code": "INVALID_INPUT"}), 400
        category = Category(name=name)
        db.session.add(category)
        db.session.commit()
        return jsonify({"category": category.to_dict()}), 201
    except PawnshopError as exc:
        return error_response(exc)


@system_bp.delete("/categories/<int:category_id>")
@require_auth
@require_operation("system-settings")
def delete_category(category_id: int):
    try:
        deletion_service.delete_category(category_id, actor=g.current_user)
        return jsonify({"deleted": category_id}), 200
    except PawnshopError as exc:
        return error_response(exc)

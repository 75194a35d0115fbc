from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import cents_to_float


class Category(db.Model):
    """Item category reference data (e.g. "Gold Jewelry")."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class InventoryRecord(db.Model):
    """
    Physical custody record for a pawned item.

    Exists while the ticket is ACTIVE, FORFEITED (still in the vault) or
    AUCTION; removed on redemption when the item leaves the vault.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.UniqueConstraint("ticket_id", name="uq_inventory_records_ticket"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    ticket_id = db.Column(db.Integer, db.ForeignKey("tickets.id"), nullable=False, index=True)

    storage_location = db.Column(db.String(64), nullable=True)
    is_for_auction = db.Column(db.Boolean, nullable=False, default=False)
    auction_price_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    category = db.relationship("Category", backref=db.backref("inventory_records", lazy=True))
    ticket = db.relationship("Ticket", backref=db.backref("inventory_record", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "category": self.category.name if self.category else None,
            "ticket_id": self.ticket_id,
            "storage_location": self.storage_location,
            "is_for_auction": self.is_for_auction,
            "auction_price": cents_to_float(self.auction_price_cents) if self.auction_price_cents is not None else None,
            "auction_price_cents": self.auction_price_cents,
            "created_at": to_utc_z(self.created_at),
        }

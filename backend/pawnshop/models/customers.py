from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data.

    MULTI-TENANT: Customers are scoped to a branch. Intake looks customers
    up by full name within the branch, so (branch_id, full_name) is unique.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "full_name", name="uq_customers_branch_name"),
        db.Index("ix_customers_branch_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)

    full_name = db.Column(db.String(128), nullable=False)
    contact_number = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    loyalty_tier = db.Column(db.String(32), nullable=False, default="Standard")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    branch = db.relationship("Branch", backref=db.backref("customers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "full_name": self.full_name,
            "contact_number": self.contact_number,
            "address": self.address,
            "loyalty_tier": self.loyalty_tier,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Branch(db.Model):
    """
    Tenant root: every pawnshop location is a Branch.

    MULTI-TENANT: Customers, tickets and staff carry branch_id and every
    query touching them is filtered by it. A branch is never hard-deleted
    while dependents exist; see deletion_service.delete_branch.
    """
    __tablename__ = "branches"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    location = db.Column(db.String(255), nullable=True)
    owner_email = db.Column(db.String(255), nullable=True)

    # Suspension flag; suspended branches cannot log in
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "owner_email": self.owner_email,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class BranchConfig(db.Model):
    """Per-branch settings: feature flags and interest terms, one row per key."""
    __tablename__ = "branch_configs"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "key", name="uq_branch_configs_branch_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    key = db.Column(db.String(128), nullable=False)
    value = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    branch = db.relationship("Branch", backref=db.backref("configs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "key": self.key,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }


class PlatformSetting(db.Model):
    """
    Platform-wide settings owned by the Super Admin.

    A feature flag set to "false" here disables the feature for every
    branch regardless of the branch's own value.
    """
    __tablename__ = "platform_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False, unique=True)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }

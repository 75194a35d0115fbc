from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Staff(db.Model):
    """
    Staff accounts for authentication and attribution.

    MULTI-TENANT: Every staff member belongs to exactly one branch, except
    Super Admins who operate at platform level (branch_id NULL).
    Role is stored as the canonical enum value (see permissions.roles).
    """
    __tablename__ = "staff"
    __table_args__ = (
        db.Index("ix_staff_branch_role", "branch_id", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed credential
    credential_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    branch = db.relationship("Branch", backref=db.backref("staff", lazy=True))

    def __repr__(self) -> str:
        return f"<Staff id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "branch_id": self.branch_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class AdminInvite(db.Model):
    """
    Pending Branch Admin invitation issued by the platform.

    The plaintext token is returned once at creation; only its hash is kept.
    Accepting the invite creates the Branch Admin staff account.
    """
    __tablename__ = "admin_invites"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "email", name="uq_admin_invites_branch_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(128), nullable=False)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    branch = db.relationship("Branch", backref=db.backref("admin_invites", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "email": self.email,
            "full_name": self.full_name,
            "created_at": to_utc_z(self.created_at),
            "accepted_at": to_utc_z(self.accepted_at) if self.accepted_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session with tenant context.

    branch_id is the staff member's own branch, captured at login.
    impersonated_branch_id is set only while a Super Admin views a branch
    as its admin; it is session state, never a client-side flag.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_staff_active", "staff_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)
    impersonated_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    # Token hash (never store plaintext tokens)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    staff = db.relationship("Staff", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "branch_id": self.branch_id,
            "impersonated_branch_id": self.impersonated_branch_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }

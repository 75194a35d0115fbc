from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ActivityLog(db.Model):
    """
    Business audit trail.

    IMMUTABLE: Never update or delete. actor_id and branch_id are plain
    columns, not foreign keys, so entries outlive the staff and branches
    they mention.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_branch_occurred", "branch_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.Integer, nullable=True, index=True)
    actor_name = db.Column(db.String(128), nullable=True)
    branch_id = db.Column(db.Integer, nullable=True)

    action = db.Column(db.String(64), nullable=False, index=True)
    detail = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "branch_id": self.branch_id,
            "action": self.action,
            "detail": self.detail,
            "occurred_at": to_utc_z(self.occurred_at),
        }

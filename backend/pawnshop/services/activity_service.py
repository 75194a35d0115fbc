# Overview: Service-layer operations for the business activity log.

from __future__ import annotations

from ..extensions import db
from ..models import ActivityLog
from ..time_utils import utcnow


def log_activity(
    action: str,
    detail: str | None = None,
    *,
    actor=None,
    branch_id: int | None = None,
    now=None,
) -> ActivityLog:
    """
    Append an activity entry to the current unit of work.

    Does not commit: the entry is written together with the change it
    describes, or not at all.
    """
    entry = ActivityLog(
        actor_id=actor.id if actor is not None else None,
        actor_name=actor.full_name if actor is not None else "system",
        branch_id=branch_id,
        action=action,
        detail=detail,
        occurred_at=now or utcnow(),
    )
    db.session.add(entry)
    return entry


def list_activity(branch_id: int | None, *, limit: int = 50) -> list[ActivityLog]:
    query = db.session.query(ActivityLog)
    if branch_id is not None:
        query = query.filter(ActivityLog.branch_id == branch_id)
    return (
        query.order_by(ActivityLog.occurred_at.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )

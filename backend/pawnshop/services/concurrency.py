# Overview: Service-layer helpers for transactional writes and status races.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db
from ..errors import ReferentialConflict, UpstreamUnavailable


@contextmanager
def unit_of_work():
    """
    Run a multi-step write as one transaction.

    Commits when the block finishes, rolls back everything on any error.
    Foreign key violations surface as ReferentialConflict, a lost
    connection as UpstreamUnavailable.
    """
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ReferentialConflict(
            "Change conflicts with related records",
            details={"reason": str(exc.orig)},
        ) from exc
    except OperationalError as exc:
        db.session.rollback()
        raise UpstreamUnavailable("Datastore unavailable, nothing was saved") from exc
    except Exception:
        db.session.rollback()
        raise


def transition_status(model, row_id: int, *, expected: str, values: dict) -> bool:
    """
    Conditional UPDATE ... WHERE id = :row_id AND status = :expected.

    Returns True when exactly one row changed. False means another request
    moved the row out of the expected status first.
    """
    stmt = (
        update(model)
        .where(model.id == row_id, model.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1

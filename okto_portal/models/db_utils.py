import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from okto_portal.extensions import db  # Centralized SQLAlchemy instance

logger = logging.getLogger(__name__)


@contextmanager
def get_session_scope():
    """
    Provide a transactional scope for database operations.

    Usage:
        with get_session_scope() as session:
            session.add(...)
            # commit happens automatically unless an exception occurs
    """
    session: Session = db.session
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database error during scoped session: {e}", exc_info=True)
        session.rollback()
        raise
    except Exception:
        # Lifecycle errors are expected control flow; the caller logs them.
        session.rollback()
        raise


def conditional_update(session: Session, model, criteria, values) -> bool:
    """
    Compare-and-swap style UPDATE: applies `values` only to rows still matching
    `criteria`. Returns True when exactly one row was changed.
    """
    affected = (
        session.query(model)
        .filter(*criteria)
        .update(values, synchronize_session=False)
    )
    return affected == 1

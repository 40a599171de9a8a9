"""
Unit-of-work helper for services that write more than one row.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.exceptions import PersistenceException


@contextmanager
def atomic(db: Session, operation: str) -> Iterator[Session]:
    """
    Run a block as one transaction.

    Commits when the block exits normally. Any exception rolls the whole
    session back; database errors are logged and re-raised as
    PersistenceException, domain errors propagate unchanged.

    Args:
        db: Database session
        operation: Short name of the unit of work, used in logs

    Yields:
        The same session
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "Transaction rolled back", operation=operation, error=str(e)
        )
        raise PersistenceException(f"Failed to complete {operation}") from e
    except Exception:
        db.rollback()
        raise

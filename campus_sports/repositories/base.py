import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from campus_sports.core.errors import DependencyFailure

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Report storage failures as DependencyFailure. Integrity errors pass through for the caller to handle."""
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        logger.error("storage failure during %s: %s", operation, exc)
        raise DependencyFailure(f"Storage unavailable during {operation}") from exc


@contextmanager
def unit_of_work(session) -> Iterator[None]:
    """Commit once on success; roll back everything on any error."""
    try:
        yield
        with storage_errors("commit"):
            session.commit()
    except Exception:
        session.rollback()
        raise

"""Database connection, session and unit-of-work management."""

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator, Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine

from cellar.config import settings
from cellar.domain.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Create the process-wide database engine on first use."""
    return create_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,  # Verify connections before use
    )


def init_db(engine: Engine) -> None:
    """Create all tables known to the SQLModel metadata."""
    # Registers the table classes on the metadata
    import cellar.domain.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Dependency to provide database session to endpoints."""
    with Session(get_engine()) as session:
        yield session


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """
    Run a block of writes as one atomic unit.

    Commits once when the block exits normally and rolls everything back
    when it raises, so no step of a multi-step operation is ever committed
    ahead of the others. Connection-level failures surface as
    ``StorageUnavailableError`` so callers can retry.

    Args:
        session: Session the block writes through

    Yields:
        The same session
    """
    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        logger.error("Storage failure, unit of work rolled back", exc_info=True)
        raise StorageUnavailableError(reason=str(e.orig or e)) from e
    except Exception:
        session.rollback()
        raise

"""
Database engine, session factory and transaction boundary.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from habitbloom.config import DATABASE_URL
from habitbloom.exceptions import DatabaseException

logger = logging.getLogger("habitbloom.db")

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

_DEPTH_KEY = "habitbloom_tx_depth"


def init_db(bind=None) -> None:
    """Create all tables on the given engine (defaults to the configured one)"""
    from habitbloom import models  # noqa: F401  Import to register all models
    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Iterator[Session]:
    """Yield a session and close it afterwards"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, operation: str = "transaction") -> Iterator[Session]:
    """
    Run a block of repository calls as one atomic unit.

    Re-entrant: a nested call joins the outermost unit, which alone commits
    or rolls back. SQLAlchemy errors are rolled back and re-raised as
    DatabaseException; domain exceptions are rolled back and propagate as-is.

    Args:
        db: Database session
        operation: Name used in logs and in DatabaseException

    Yields:
        The same session
    """
    depth = db.info.get(_DEPTH_KEY, 0)
    db.info[_DEPTH_KEY] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
    except SQLAlchemyError as e:
        if depth == 0:
            db.rollback()
            logger.error(f"{operation} failed: {e}")
            raise DatabaseException(operation, str(e)) from e
        raise
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info[_DEPTH_KEY] = depth

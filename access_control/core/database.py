"""
Database configuration and session management.
"""
from contextlib import contextmanager

from sqlalchemy import BigInteger, Integer, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from .config import settings
from .exceptions import PartialCommitFailure, StoreUnavailable
from .logging_config import get_logger

logger = get_logger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}  # Needed for SQLite
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# SQLite only autoincrements INTEGER primary keys
PrimaryKey = BigInteger().with_variant(Integer, "sqlite")


def init_db(bind=None):
    """Create all tables."""
    from .. import models  # noqa: F401  registers every mapper on Base

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, operation: str = "operation"):
    """
    Run a block as one unit of work: commit on success, roll back on failure.

    Store errors surface as StoreUnavailable once the rollback succeeded, since
    nothing was persisted. If the rollback itself fails the stored state is
    unknown and PartialCommitFailure is raised instead.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        logger.error("Store failure during %s: %s", operation, exc)
        try:
            db.rollback()
        except SQLAlchemyError as rollback_exc:
            logger.critical("Rollback failed during %s: %s", operation, rollback_exc)
            raise PartialCommitFailure(
                f"{operation} may have been partially applied",
                detail=str(rollback_exc),
            ) from exc
        raise StoreUnavailable(f"{operation} could not be completed", detail=str(exc)) from exc
    except Exception:
        db.rollback()
        raise

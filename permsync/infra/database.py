"""Database engine and session management."""

from contextlib import contextmanager
from typing import Any, Dict, Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from permsync.infra.config import config


def _engine_options(database_url: str) -> Dict[str, Any]:
    # SQLite (local runs, tests) keeps SQLAlchemy's default pool
    if database_url.startswith("sqlite"):
        return {"echo": config.DEBUG}
    return {
        "poolclass": QueuePool,
        "pool_size": 5,  # Workers reconcile one tenant at a time
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "echo": config.DEBUG,
    }


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Transactional session scope.

    Commits when the block exits cleanly, rolls back and re-raises otherwise.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI routes."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

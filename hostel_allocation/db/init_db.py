"""Database initialization utilities."""

from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from hostel_allocation.config.logging import get_logger
from hostel_allocation.db.base import Base, import_models

logger = get_logger(__name__)


def _resolve_engine(bind: Optional[Engine]) -> Engine:
    if bind is not None:
        return bind
    from hostel_allocation.config.database import engine

    return engine


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Initialize the database by creating all tables.

    Existing tables are left untouched, so calling this twice is safe.
    """
    db_engine = _resolve_engine(bind)
    import_models()

    existing_tables = set(inspect(db_engine).get_table_names())
    missing = [t for t in Base.metadata.sorted_tables if t.name not in existing_tables]
    if not missing:
        logger.info(f"Database already initialized with {len(existing_tables)} tables")
        return

    Base.metadata.create_all(bind=db_engine)
    logger.info(f"Database tables created: {', '.join(t.name for t in missing)}")


def drop_db(bind: Optional[Engine] = None) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data!
    """
    Base.metadata.drop_all(bind=_resolve_engine(bind))
    logger.warning("All database tables dropped")


def reset_db(bind: Optional[Engine] = None) -> None:
    """Reset the database by dropping and recreating all tables."""
    logger.warning("Resetting database...")
    drop_db(bind)
    init_db(bind)
    logger.info("Database reset complete")

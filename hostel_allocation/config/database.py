"""
Database connection settings for the hostel allocation engine.
Provides SQLAlchemy engine construction and session management.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from hostel_allocation.config.logging import get_logger
from hostel_allocation.config.settings import settings

logger = get_logger(__name__)


def _sqlite_connect_args() -> Dict[str, Any]:
    # Worker threads share the engine; each thread still gets its own connection.
    return {"check_same_thread": False, "timeout": settings.DB_BUSY_TIMEOUT}


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Build an engine for the configured database.

    SQLite connections get foreign key enforcement and a busy timeout so
    concurrent writers queue on the database lock instead of failing fast.

    Args:
        database_url: Overrides ``settings.DATABASE_URL``
        echo: Overrides ``settings.DB_ECHO``

    Returns:
        Configured SQLAlchemy engine
    """
    url = database_url or settings.DATABASE_URL
    echo = settings.DB_ECHO if echo is None else echo

    if url.startswith("sqlite"):
        db_engine = create_engine(url, echo=echo, connect_args=_sqlite_connect_args())

        @event.listens_for(db_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        db_engine = create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )

    logger.debug(f"Database engine created for {db_engine.url.render_as_string(hide_password=True)}")
    return db_engine


def create_session_factory(db_engine: Engine) -> sessionmaker:
    """Session factory bound to ``db_engine``."""
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False)


engine = create_db_engine()
SessionLocal = create_session_factory(engine)


# Event listeners for performance monitoring
@event.listens_for(Engine, "before_cursor_execute")
def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log query execution time - start timer"""
    conn.info.setdefault('query_start_time', []).append(time.time())


@event.listens_for(Engine, "after_cursor_execute")
def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log query execution time - stop timer and log if slow query"""
    total_time = time.time() - conn.info['query_start_time'].pop()

    if total_time > settings.SLOW_QUERY_THRESHOLD:
        logger.warning(
            f"Slow query detected ({total_time:.4f}s): "
            f"{statement[:100]}... with params {parameters}"
        )


def get_db_session() -> Generator[Session, None, None]:
    """Get database session with automatic cleanup"""
    session = SessionLocal()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database session error: {str(e)}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database sessions"""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error(f"Database context error: {str(e)}")
        session.rollback()
        raise
    finally:
        session.close()

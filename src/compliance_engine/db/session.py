"""
Database Session Management

Provides database connection pooling and session management. The engine is
created on first use so that importing the package never opens a connection.
"""
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from sqlalchemy import create_engine, event, exc
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.compliance_engine.utils.logger import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """
    Create the database engine from settings.

    Returns:
        Shared SQLAlchemy engine
    """
    options = {"echo": settings.database_echo}
    if not settings.database_url.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_recycle=3600)

    engine = create_engine(settings.database_url, **options)

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        logger.debug("database_connection_established")

    logger.info("database_engine_created", dialect=engine.dialect.name)
    return engine


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return sessionmaker(
        bind=get_engine(),
        autocommit=False,
        autoflush=False,
        expire_on_commit=False
    )


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Get database session with automatic cleanup.

    Usage:
        with get_db_session() as session:
            stores = StoreSnapshotRepository().load_active_stores(session)

    Yields:
        Database session

    Raises:
        Exception: Re-raises any exception after rollback
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except exc.SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "database_session_rollback",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    except Exception as e:
        session.rollback()
        logger.error(
            "database_session_error",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all database tables defined in models.

    Only for testing and initial setup.
    """
    from src.compliance_engine.db.base import Base, import_all_models

    logger.info("creating_database_tables")
    import_all_models()
    Base.metadata.create_all(bind=get_engine())
    logger.info("database_tables_created")

"""
Database connection and session management.

Engines and session factories are built from ``DatabaseConfig`` so the
same code serves the SQLite default and a MySQL deployment.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import DatabaseConfig, get_settings
from .logging import get_logger

logger = get_logger(__name__)


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """
    Create a SQLAlchemy engine from configuration.

    Example:
        >>> engine = create_database_engine()
    """
    if config is None:
        config = get_settings().database

    connection_url = config.get_connection_url()
    engine_options = config.get_engine_options()

    logger.info(f"Creating database engine for {config.backend} backend")
    logger.debug(f"Connection URL: {connection_url.split('@')[0]}@***")

    try:
        return create_engine(connection_url, **engine_options)
    except Exception as e:
        logger.error(f"Failed to create database engine: {str(e)}")
        raise


def create_session_factory(engine: Engine | None = None) -> sessionmaker:
    """
    Create the session factory used by the web layer and scripts.

    Example:
        >>> SessionLocal = create_session_factory()
        >>> with SessionLocal() as session:
        ...     pass
    """
    if engine is None:
        engine = create_database_engine()

    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def make_engine_and_session(connection_url: str | None = None) -> tuple[Engine, sessionmaker]:
    """
    Create an engine and its session factory.

    An explicit ``connection_url`` bypasses configuration; alembic and
    one-off scripts use it.
    """
    if connection_url:
        engine = create_engine(connection_url, echo=False, pool_pre_ping=True)
    else:
        engine = create_database_engine()
    return engine, create_session_factory(engine)


def get_database_url() -> str:
    return get_settings().database.get_connection_url()


def is_database_configured() -> bool:
    try:
        get_settings().database.get_connection_url()
        return True
    except Exception as e:
        logger.warning(f"Database configuration invalid: {str(e)}")
        return False

from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from competency.infrastructure.config import DatabaseConfig, get_settings
from competency.infrastructure.db import create_database_engine, create_session_factory
from competency.infrastructure.logging import clear_context


def get_db_config(request: Request) -> DatabaseConfig:
    config = getattr(request.app.state, "db_config", None)
    if config is None:
        config = get_settings().database
        request.app.state.db_config = config
    return config


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Session factory cached on the app; rebuilt when the database config changes."""
    config = get_db_config(request)
    cached_factory = getattr(request.app.state, "session_factory", None)
    cached_config = getattr(request.app.state, "session_factory_config", None)

    current_config = config.model_dump()
    if cached_factory is not None and cached_config == current_config:
        return cached_factory

    session_factory = create_session_factory(create_database_engine(config))
    request.app.state.session_factory = session_factory
    request.app.state.session_factory_config = current_config
    return session_factory


def get_db_session(request: Request) -> Generator[Session, None, None]:
    session = get_session_factory(request)()
    try:
        yield session
    finally:
        session.close()
        clear_context()

from __future__ import annotations

import argparse

import uvicorn

from competency.infrastructure.config import load_settings_from_file
from competency.infrastructure.db import make_engine_and_session
from competency.infrastructure.logging import get_logger
from competency.infrastructure.uow import UnitOfWork
from competency.utils.seed import initialise_database, seed_ninebox_defaults

logger = get_logger("run_server")


def prepare_database() -> None:
    """Create missing tables and the default 9-box cells for the configured database."""
    engine, session_factory = make_engine_and_session()
    existed = initialise_database(engine)
    with UnitOfWork(session_factory).begin() as session:
        seed_ninebox_defaults(session)
    logger.info("Database ready" if existed else "Database tables created")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the competency assessment API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument(
        "--skip-db-init", action="store_true", help="Do not create tables or seed defaults"
    )
    parser.add_argument(
        "--config", help="JSON settings file with database, logging, app and scoring sections"
    )
    args = parser.parse_args(argv)

    if args.config:
        settings = load_settings_from_file(args.config)
        logger.info(f"Loaded settings for {settings.app.environment} from {args.config}")

    if not args.skip_db_init:
        prepare_database()

    uvicorn.run(
        "competency.web.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()

"""
CLI entry point for the ledger service.

Usage:
    # Create missing tables in the configured database
    python -m app.cli init-db

    # Serve the HTTP API
    python -m app.cli serve --port 8000
"""

import argparse
import logging

from app.core.config import settings
from app.shared.logging import configure_logging

logger = logging.getLogger(__name__)


def cmd_init_db(args: argparse.Namespace) -> None:
    """Create the ledger tables without starting the server."""
    from app.infrastructure.ledger.database import create_db_engine
    from app.infrastructure.ledger.schema import init_schema

    engine = create_db_engine(args.database_url or settings.get_database_dsn())
    try:
        init_schema(engine)
    finally:
        engine.dispose()
    logger.info("Ledger schema ready")


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI application under uvicorn."""
    import uvicorn

    logger.info("Starting %s at http://%s:%d", settings.project_name, args.host, args.port)
    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ledger service CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create ledger tables")
    init_parser.add_argument(
        "--database-url", default=None, dest="database_url",
        help="SQLAlchemy URL (defaults to the configured database)",
    )
    init_parser.set_defaults(func=cmd_init_db)

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument(
        "--port", type=int, default=8000,
        help="Port to listen on (default 8000)",
    )
    serve_parser.add_argument("--reload", action="store_true")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> None:
    configure_logging(level=settings.log_level)
    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()

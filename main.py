"""
Application entry points for the lesson bot service.

Usage:
    # Run FastAPI server (production - uses Granian)
    python main.py api

    # Run FastAPI server (development - uses Uvicorn with hot-reload)
    python main.py api --dev

    # Run Telegram bot
    python main.py bot

    # Create the database tables
    python main.py initdb
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from lessonbot.config import get_settings


def run_api_granian() -> int:
    """Run the FastAPI application with Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    settings = get_settings()
    api = settings.api

    print(f"Starting Granian server on {api.host}:{api.port} with {api.workers} workers...")

    server = Granian(
        target="lessonbot.api.main:app",
        address=api.host,
        port=api.port,
        workers=api.workers,
        interface=Interfaces.ASGI,
        log_level="info" if not settings.app.debug else "debug",
    )
    server.serve()
    return 0


def run_api_uvicorn() -> int:
    """Run the FastAPI application with Uvicorn (development, with hot-reload)."""
    import uvicorn

    settings = get_settings()

    print(f"Starting Uvicorn dev server on {settings.api.host}:{settings.api.port} with hot-reload...")

    uvicorn.run(
        "lessonbot.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=True,
        log_level="debug" if settings.app.debug else "info",
    )
    return 0


def run_bot() -> int:
    """Run the Telegram bot."""
    from lessonbot.api.telegram_bot import main as bot_main

    settings = get_settings()

    if not settings.telegram.token:
        print("Error: TELEGRAM__TOKEN not configured", file=sys.stderr)
        print("Set it in .env or as environment variable", file=sys.stderr)
        return 1

    return bot_main(settings)


def run_initdb() -> int:
    """Create the SQLite file and its tables."""
    from lessonbot.db.session import create_engine, init_models

    settings = get_settings()

    async def _init() -> None:
        engine = create_engine(settings)
        try:
            await init_models(engine)
        finally:
            await engine.dispose()

    asyncio.run(_init())
    print(f"Database ready at {settings.database.path}")
    return 0


def main() -> int:
    """Main entry point with subcommand routing."""
    parser = argparse.ArgumentParser(
        description="Lesson bot service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # API subcommand
    api_parser = subparsers.add_parser("api", help="Run FastAPI server")
    api_parser.add_argument(
        "--dev",
        action="store_true",
        help="Use Uvicorn with hot-reload (development mode)",
    )

    # Bot subcommand
    subparsers.add_parser("bot", help="Run Telegram bot")

    # Database subcommand
    subparsers.add_parser("initdb", help="Create database tables")

    args = parser.parse_args()

    if args.command == "api":
        if args.dev:
            return run_api_uvicorn()
        return run_api_granian()
    elif args.command == "bot":
        return run_bot()
    elif args.command == "initdb":
        return run_initdb()
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())

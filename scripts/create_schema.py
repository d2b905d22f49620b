#!/usr/bin/env python3
"""
create_schema.py
----------------

Creates (or drops) the progress tracking tables on the configured database.

USAGE:
  python scripts/create_schema.py create   # Create missing tables and indexes
  python scripts/create_schema.py drop     # Drop every table (asks first)

DATABASE_URL is read from the environment / .env, or pass --database-url.
"""

import argparse
import asyncio
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.core.config import Config  # noqa: E402
from src.core.database.service import DatabaseService  # noqa: E402
from src.core.logging import get_logger, setup_logging, shutdown_logging  # noqa: E402
from src.database.models import Base  # noqa: E402

logger = get_logger("scripts.create_schema")


# ============================================================================
# COMMANDS
# ============================================================================


async def run(command: str, database_url: str) -> None:
    await DatabaseService.initialize(database_url or None)
    try:
        async with DatabaseService.engine().begin() as conn:
            if command == "create":
                await conn.run_sync(Base.metadata.create_all)
            else:
                await conn.run_sync(Base.metadata.drop_all)
        logger.info(
            "Schema command complete",
            extra={"command": command, "tables": sorted(Base.metadata.tables)},
        )
    finally:
        await DatabaseService.shutdown()


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage the progress tracking schema")
    parser.add_argument("command", choices=["create", "drop"])
    parser.add_argument("--database-url", default="", help="Overrides DATABASE_URL")
    parser.add_argument("--yes", action="store_true", help="Skip the drop confirmation")
    args = parser.parse_args()

    if args.command == "drop" and not args.yes:
        answer = input("Drop all progress tracking tables? [y/N] ")
        if answer.strip().lower() != "y":
            print("Aborted.")
            return

    setup_logging()
    Config.validate()
    try:
        asyncio.run(run(args.command, args.database_url))
    finally:
        shutdown_logging()


if __name__ == "__main__":
    main()

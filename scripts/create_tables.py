#!/usr/bin/env python3
"""Create (or recreate with --drop) the database schema using SQLAlchemy models."""

import argparse
import asyncio
import logging
import sys

from sqlalchemy import inspect

from repbot.config import configure_logging, load_config
from repbot.database.connection import DatabaseManager

logger = logging.getLogger("create_tables")


async def create_tables(drop: bool) -> bool:
    config = load_config()
    configure_logging(config)
    db = DatabaseManager(config.database, echo=config.debug)
    print(f"Creating database tables ({db.dialect_name})...")

    try:
        await db.initialize()
        await db.create_schema(drop=drop)

        async with db.read_only_session() as session:
            conn = await session.connection()
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        print(f"Tables: {tables}")
        return True

    except Exception:
        logger.exception("Failed to create tables")
        return False
    finally:
        await db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    args = parser.parse_args()
    success = asyncio.run(create_tables(args.drop))
    sys.exit(0 if success else 1)

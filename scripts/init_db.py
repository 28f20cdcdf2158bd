#!/usr/bin/env python3
"""Initialize database tables.

Tables are also created on startup outside production. Run this once
before the first production start.

Usage:
    python scripts/init_db.py
"""

import asyncio

import mirrorbot.db.models  # noqa: F401 - Register models with SQLModel
from mirrorbot.db.session import close_db, init_db


async def _create() -> None:
    try:
        await init_db()
    finally:
        await close_db()


def main():
    """Create all database tables."""
    asyncio.run(_create())
    print("Database tables created successfully.")


if __name__ == "__main__":
    main()

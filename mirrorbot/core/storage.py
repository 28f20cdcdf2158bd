"""Unit of work over the repositories.

Handlers open one unit per logical write so a failed write never leaves
half-applied state, and database errors surface as PersistenceError.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorbot.core.exceptions import PersistenceError
from mirrorbot.db.repositories import Repositories
from mirrorbot.logging_config import get_logger

logger: Any = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@asynccontextmanager
async def unit_of_work(factory: SessionFactory) -> AsyncIterator[Repositories]:
    """Open a session, yield its repositories, commit on exit.

    Raises:
        PersistenceError: If any database operation fails
    """
    try:
        async with factory() as session:
            yield Repositories.from_session(session)
    except SQLAlchemyError as e:
        logger.error(f"Database operation failed: {type(e).__name__}: {e}")
        raise PersistenceError(str(e)) from e

"""
RecipeHub Backend — Recipe ID Allocator
=========================================

What:  Hands out strictly increasing integer recipe IDs.
How:   One row per counter in the `counters` table. Each `next()` call runs
       in its own short transaction:

           INSERT INTO counters (name, value) VALUES (:name, 0)
               ON CONFLICT (name) DO NOTHING;
           UPDATE counters SET value = value + 1
               WHERE name = :name RETURNING value;

       The database serializes the UPDATE on the row, so concurrent callers
       never see the same value, and the conflict-ignoring insert makes the
       first-use initialization safe under concurrent first calls.
Who:   RecipeService.create_recipe.

Values are committed as soon as they are returned. A recipe insert that fails
afterwards leaves a gap; values are never handed out twice, including after
a recipe is deleted.
"""

import logging
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recipehub.database import get_session_factory
from recipehub.exceptions import DatabaseError
from recipehub.models.counter import Counter

logger = logging.getLogger(__name__)

RECIPE_COUNTER = "recipe_id"

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class IdAllocator:
    """
    Atomic increment-and-read over a named counter row.

    Args:
        name: Counter row name
        session_factory: Returns the session factory to use; defaults to the
            process-wide one from recipehub.database
    """

    def __init__(
        self,
        name: str = RECIPE_COUNTER,
        session_factory: Optional[Callable[[], async_sessionmaker[AsyncSession]]] = None,
    ):
        self.name = name
        self._session_factory = session_factory or get_session_factory

    async def next(self) -> int:
        """
        Return a value strictly greater than every value returned before.

        Raises:
            DatabaseError: the counter could not be incremented
        """
        async with self._session_factory()() as session:
            try:
                async with session.begin():
                    await self._ensure_row(session)
                    result = await session.execute(
                        update(Counter)
                        .where(Counter.name == self.name)
                        .values(value=Counter.value + 1)
                        .returning(Counter.value)
                        .execution_options(synchronize_session=False)
                    )
                    value = result.scalar_one()
            except Exception as e:
                logger.error("Failed to allocate %s: %s", self.name, str(e), exc_info=True)
                raise DatabaseError(
                    message="Could not allocate a recipe ID. Please try again.",
                    context={"counter": self.name, "error_type": type(e).__name__},
                )

        logger.debug("Allocated %s=%d", self.name, value)
        return value

    async def _ensure_row(self, session: AsyncSession) -> None:
        dialect = session.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"IdAllocator does not support the '{dialect}' dialect")
        await session.execute(
            insert(Counter)
            .values(name=self.name, value=0)
            .on_conflict_do_nothing(index_elements=[Counter.name])
        )


recipe_id_allocator = IdAllocator()

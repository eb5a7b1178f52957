"""SQLAlchemy-backed data source for cache rebuilds."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from entrycache.infrastructure.cache.codec import to_mapping
from entrycache.infrastructure.persistence.database import get_session_factory

logger = logging.getLogger(__name__)


class SqlAlchemyDataSource:
    """Loads one ORM row by primary key and returns its column mapping.

    Each load opens its own short read-only session.
    """

    def __init__(
        self,
        model: type,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        pk_column: str = "id",
    ) -> None:
        self.model = model
        self.pk_column = pk_column
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def load_current(self, pk: Any) -> dict[str, Any] | None:
        """Return the row with pk_column == pk as a mapping, or None when absent."""
        column = getattr(self.model, self.pk_column)
        async with self.session_factory() as session:
            result = await session.execute(select(self.model).where(column == pk))
            row = result.scalar_one_or_none()
            if row is None:
                logger.debug("%s %s=%s not found", self.model.__name__, self.pk_column, pk)
                return None
            return to_mapping(row)

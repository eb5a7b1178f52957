"""SqlAlchemyDataSource and session factory tests (no database needed)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.orm import Mapped, mapped_column

from entrycache.core.config import Settings
from entrycache.domain.exceptions import SqlNotConfiguredException
from entrycache.infrastructure.persistence import database
from entrycache.infrastructure.persistence.database import Base, get_session_factory
from entrycache.infrastructure.persistence.sql_source import SqlAlchemyDataSource


class SourceWidgetRow(Base):
    __tablename__ = "source_widgets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str]
    status: Mapped[int] = mapped_column(default=1)


def _session_factory(row) -> tuple[MagicMock, AsyncMock]:
    result = MagicMock()
    result.scalar_one_or_none.return_value = row
    session = AsyncMock()
    session.execute.return_value = result
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    factory.return_value.__aexit__.return_value = False
    return factory, session


@pytest.mark.asyncio
async def test_load_current_returns_column_mapping() -> None:
    factory, session = _session_factory(SourceWidgetRow(id=1, name="lamp", status=2))
    source = SqlAlchemyDataSource(SourceWidgetRow, session_factory=factory)

    assert await source.load_current(1) == {"id": 1, "name": "lamp", "status": 2}
    session.execute.assert_awaited_once()
    statement = str(session.execute.await_args.args[0])
    assert "source_widgets.id = :id_1" in statement


@pytest.mark.asyncio
async def test_load_current_returns_none_when_absent() -> None:
    factory, _ = _session_factory(None)
    source = SqlAlchemyDataSource(SourceWidgetRow, session_factory=factory)

    assert await source.load_current(404) is None


def test_session_factory_requires_database_url(monkeypatch) -> None:
    monkeypatch.setattr(database, "engine", None)
    monkeypatch.setattr(database, "AsyncSessionLocal", None)
    monkeypatch.setattr(database, "get_settings", lambda: Settings(_env_file=None, database_url=""))

    with pytest.raises(SqlNotConfiguredException):
        get_session_factory()

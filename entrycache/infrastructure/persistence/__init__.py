"""SQL persistence used as a cache data source."""

from entrycache.infrastructure.persistence.database import (
    Base,
    dispose_engine,
    get_engine,
    get_session_factory,
)
from entrycache.infrastructure.persistence.sql_source import SqlAlchemyDataSource

__all__ = [
    "Base",
    "SqlAlchemyDataSource",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
]

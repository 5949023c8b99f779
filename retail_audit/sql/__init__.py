"""SQL engine: the retail schema and queries on SQLite."""

from .queries import QUERIES, query_parameters
from .schema import SCHEMA_STATEMENTS, TABLE_NAMES, create_schema
from .store import SqliteStore

__all__ = [
    "QUERIES",
    "SCHEMA_STATEMENTS",
    "SqliteStore",
    "TABLE_NAMES",
    "create_schema",
    "query_parameters",
]

"""
Database adapters, connection registry and session service
"""

from .errors import (
    DatabaseError,
    ConfigValidationError,
    UnsupportedEngineError,
    DatabaseConnectionError,
    NotConnectedError,
    UnknownSessionError,
    QueryError,
)
from .models import (
    ConnectionConfig,
    ColumnSchema,
    ForeignKeySchema,
    TableSchema,
    DatabaseLayout,
    SqlQuery,
    ExplainQuery,
    QueryResult,
    ExplainResult,
)
from .adapters import DatabaseAdapter, PostgreSQLAdapter, MySQLAdapter
from .factory import DatabaseFactory, create_adapter
from .registry import ConnectionRegistry, new_session_id
from .service import DatabaseService, build_explain_sql

__all__ = [
    'DatabaseError',
    'ConfigValidationError',
    'UnsupportedEngineError',
    'DatabaseConnectionError',
    'NotConnectedError',
    'UnknownSessionError',
    'QueryError',
    'ConnectionConfig',
    'ColumnSchema',
    'ForeignKeySchema',
    'TableSchema',
    'DatabaseLayout',
    'SqlQuery',
    'ExplainQuery',
    'QueryResult',
    'ExplainResult',
    'DatabaseAdapter',
    'PostgreSQLAdapter',
    'MySQLAdapter',
    'DatabaseFactory',
    'create_adapter',
    'ConnectionRegistry',
    'new_session_id',
    'DatabaseService',
    'build_explain_sql',
]

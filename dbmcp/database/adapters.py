"""
Database adapters for different database types
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import psycopg2
import pymysql

from .errors import ConfigValidationError, DatabaseConnectionError, NotConnectedError, QueryError
from .models import (
    ColumnSchema,
    ConnectionConfig,
    DatabaseLayout,
    ForeignKeySchema,
    QueryResult,
    SqlParam,
    SqlQuery,
    TableSchema,
    build_rows,
)

logger = logging.getLogger(__name__)


# Catalog queries. Placeholders use the pyformat style both drivers understand.

MYSQL_DATABASE_NAME_QUERY = "SELECT DATABASE() AS db_name"

MYSQL_TABLES_QUERY = """
    SELECT TABLE_NAME
    FROM information_schema.tables
    WHERE table_schema = %(schema)s AND table_type = 'BASE TABLE'
"""

MYSQL_COLUMNS_QUERY = """
    SELECT
        COLUMN_NAME,
        DATA_TYPE,
        IS_NULLABLE,
        COLUMN_DEFAULT,
        COLUMN_KEY
    FROM information_schema.columns
    WHERE table_schema = %(schema)s AND table_name = %(table_name)s
    ORDER BY ordinal_position
"""

MYSQL_FOREIGN_KEYS_QUERY = """
    SELECT
        COLUMN_NAME,
        REFERENCED_TABLE_NAME,
        REFERENCED_COLUMN_NAME,
        CONSTRAINT_NAME
    FROM information_schema.key_column_usage
    WHERE table_schema = %(schema)s
        AND table_name = %(table_name)s
        AND referenced_table_name IS NOT NULL
"""

POSTGRES_DATABASE_NAME_QUERY = "SELECT current_database() AS db_name"

POSTGRES_TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %(schema)s AND table_type = 'BASE TABLE'
"""

POSTGRES_COLUMNS_QUERY = """
    SELECT
        c.column_name,
        c.data_type,
        c.is_nullable,
        c.column_default,
        CASE WHEN pk.column_name IS NOT NULL THEN true ELSE false END AS is_primary_key
    FROM information_schema.columns c
    LEFT JOIN (
        SELECT ku.column_name
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage ku
            ON tc.constraint_name = ku.constraint_name
            AND tc.table_schema = ku.table_schema
            AND tc.table_name = ku.table_name
        WHERE tc.constraint_type = 'PRIMARY KEY'
            AND tc.table_name = %(table_name)s
            AND tc.table_schema = %(schema)s
    ) pk ON c.column_name = pk.column_name
    WHERE c.table_name = %(table_name)s AND c.table_schema = %(schema)s
    ORDER BY c.ordinal_position
"""

POSTGRES_FOREIGN_KEYS_QUERY = """
    SELECT
        kcu.column_name,
        ccu.table_name AS foreign_table_name,
        ccu.column_name AS foreign_column_name,
        tc.constraint_name
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
    JOIN information_schema.constraint_column_usage AS ccu
        ON ccu.constraint_name = tc.constraint_name
        AND ccu.table_schema = tc.table_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
        AND tc.table_name = %(table_name)s
        AND tc.table_schema = %(schema)s
"""

# Quoted literals and comments are matched first so placeholders inside them are left alone.
_QUESTION_MARK_TOKENS = re.compile(
    r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"|`[^`]*`|--[^\n]*|#[^\n]*|/\*[\s\S]*?\*/|\?|%"
)
_NUMBERED_TOKENS = re.compile(
    r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|--[^\n]*|/\*[\s\S]*?\*/|\$(\d+)|%"
)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('utf-8', errors='replace')
    return str(value)


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    An adapter owns at most one physical connection. It starts disconnected,
    becomes usable after `connect()` and returns to the disconnected state on
    `disconnect()`. Every operation other than `connect()` requires a live
    connection and raises `NotConnectedError` otherwise.

    A single adapter must not be driven concurrently; the underlying driver
    connection is not shared between callers.
    """

    ENGINE: str = ''
    LABEL: str = ''
    DRIVER_ERROR: type = Exception

    DATABASE_NAME_QUERY: str = ''
    TABLES_QUERY: str = ''
    COLUMNS_QUERY: str = ''
    FOREIGN_KEYS_QUERY: str = ''

    def __init__(self, config: ConnectionConfig):
        if config.engine != self.ENGINE:
            raise ConfigValidationError(
                f"Invalid database type for {type(self).__name__}: {config.engine}",
                engine=config.engine
            )
        self.config = config.with_defaults()
        self.connection = None

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    @abstractmethod
    def _open_connection(self) -> Any:
        """Open and return a driver connection"""
        pass

    @abstractmethod
    def _translate_params(self, sql: str,
                          params: Optional[Sequence[SqlParam]]) -> Tuple[str, Optional[List[SqlParam]]]:
        """Rewrite engine placeholders into the driver's format"""
        pass

    @abstractmethod
    def _schema_name(self) -> str:
        """Schema whose base tables are introspected"""
        pass

    @abstractmethod
    def _is_primary_key(self, value: Any) -> bool:
        pass

    def connect(self) -> None:
        """Connect to the configured database"""
        if self.connection is not None:
            logger.debug(f"{self.LABEL} adapter already connected to {self._target()}")
            return

        try:
            connection = self._open_connection()
        except Exception as e:
            raise DatabaseConnectionError(
                f"{self.LABEL} connection failed: {e}",
                engine=self.ENGINE,
                original_error=e
            ) from e

        self.connection = connection
        logger.info(f"Connected to {self.LABEL} at {self._target()}")

    def disconnect(self) -> None:
        """Close the connection if there is one; close errors are logged"""
        connection = self.connection
        if connection is None:
            return

        try:
            connection.close()
        except Exception as e:
            logger.warning(f"Error disconnecting from {self.LABEL}: {e}")
        finally:
            self.connection = None

        logger.info(f"Disconnected from {self.LABEL} at {self._target()}")

    def execute(self, query: Union[SqlQuery, str, Dict[str, Any]]) -> QueryResult:
        """Execute a query, binding params positionally"""
        query = SqlQuery.from_value(query)
        connection = self._require_connection()
        sql, params = self._translate_params(query.sql, query.params)

        try:
            with connection.cursor() as cursor:
                cursor.execute(sql, params)
                if cursor.description is None:
                    return QueryResult(columns=[], rows=[], affected_rows=cursor.rowcount)

                columns = [desc[0] for desc in cursor.description]
                rows = build_rows(columns, cursor.fetchall())
        except self.DRIVER_ERROR as e:
            raise QueryError(str(e), engine=self.ENGINE, original_error=e) from e

        return QueryResult(columns=columns, rows=rows)

    def introspect(self) -> DatabaseLayout:
        """Snapshot every base table with its columns and foreign keys"""
        connection = self._require_connection()
        schema = self._schema_name()

        try:
            with connection.cursor() as cursor:
                cursor.execute(self.DATABASE_NAME_QUERY)
                row = cursor.fetchone()
                db_name = _as_text(row[0]) if row else None

                cursor.execute(self.TABLES_QUERY, {'schema': schema})
                table_names = [_as_text(r[0]) for r in cursor.fetchall()]

                tables = [self._describe_table(cursor, schema, name) for name in table_names]
        except self.DRIVER_ERROR as e:
            raise QueryError(
                f"{self.LABEL} introspection failed: {e}",
                engine=self.ENGINE,
                original_error=e
            ) from e

        return DatabaseLayout(name=db_name or self.config.database, tables=tables)

    def _describe_table(self, cursor, schema: str, table_name: str) -> TableSchema:
        params = {'schema': schema, 'table_name': table_name}

        cursor.execute(self.COLUMNS_QUERY, params)
        columns = [
            ColumnSchema(
                name=_as_text(name),
                type=_as_text(data_type),
                nullable=_as_text(is_nullable) == 'YES',
                default_value=_as_text(default),
                primary_key=self._is_primary_key(key),
            )
            for name, data_type, is_nullable, default, key in cursor.fetchall()
        ]

        cursor.execute(self.FOREIGN_KEYS_QUERY, params)
        foreign_keys = [
            ForeignKeySchema(
                column=_as_text(column),
                foreign_table=_as_text(foreign_table),
                foreign_column=_as_text(foreign_column),
                constraint_name=_as_text(constraint_name),
            )
            for column, foreign_table, foreign_column, constraint_name in cursor.fetchall()
        ]

        return TableSchema(name=table_name, columns=columns, foreign_keys=foreign_keys)

    def _require_connection(self) -> Any:
        if self.connection is None:
            raise NotConnectedError(f"Not connected to {self.LABEL}", engine=self.ENGINE)
        return self.connection

    def _target(self) -> str:
        return f"{self.config.host}:{self.config.port}/{self.config.database}"

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return False

    def __repr__(self) -> str:
        state = 'connected' if self.is_connected else 'disconnected'
        return f"<{type(self).__name__} {self._target()} {state}>"


class MySQLAdapter(DatabaseAdapter):
    """MySQL database adapter; queries use `?` placeholders"""

    ENGINE = 'mysql'
    LABEL = 'MySQL'
    DRIVER_ERROR = pymysql.MySQLError

    DATABASE_NAME_QUERY = MYSQL_DATABASE_NAME_QUERY
    TABLES_QUERY = MYSQL_TABLES_QUERY
    COLUMNS_QUERY = MYSQL_COLUMNS_QUERY
    FOREIGN_KEYS_QUERY = MYSQL_FOREIGN_KEYS_QUERY

    def _open_connection(self) -> Any:
        # pymysql performs the handshake while constructing the connection
        return pymysql.connect(
            host=self.config.host,
            port=self.config.port,
            user=self.config.username,
            password=self.config.password,
            database=self.config.database,
            charset='utf8mb4',
            autocommit=True
        )

    def _translate_params(self, sql: str,
                          params: Optional[Sequence[SqlParam]]) -> Tuple[str, Optional[List[SqlParam]]]:
        if not params:
            return sql, None

        placeholders = 0

        def substitute(match) -> str:
            nonlocal placeholders
            token = match.group(0)
            if token == '?':
                placeholders += 1
                return '%s'
            return token.replace('%', '%%')

        converted = _QUESTION_MARK_TOKENS.sub(substitute, sql)
        if placeholders != len(params):
            raise QueryError(
                f"Query has {placeholders} placeholder(s) but {len(params)} parameter(s) were supplied",
                engine=self.ENGINE
            )
        return converted, list(params)

    def _schema_name(self) -> str:
        return self.config.database

    def _is_primary_key(self, value: Any) -> bool:
        return _as_text(value) == 'PRI'


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL database adapter; queries use `$1, $2, ...` placeholders"""

    ENGINE = 'postgres'
    LABEL = 'PostgreSQL'
    DRIVER_ERROR = psycopg2.Error
    SCHEMA = 'public'

    DATABASE_NAME_QUERY = POSTGRES_DATABASE_NAME_QUERY
    TABLES_QUERY = POSTGRES_TABLES_QUERY
    COLUMNS_QUERY = POSTGRES_COLUMNS_QUERY
    FOREIGN_KEYS_QUERY = POSTGRES_FOREIGN_KEYS_QUERY

    def _open_connection(self) -> Any:
        connection = psycopg2.connect(
            host=self.config.host,
            port=self.config.port,
            dbname=self.config.database,
            user=self.config.username,
            password=self.config.password
        )
        connection.autocommit = True
        return connection

    def _translate_params(self, sql: str,
                          params: Optional[Sequence[SqlParam]]) -> Tuple[str, Optional[List[SqlParam]]]:
        if not params:
            return sql, None

        ordered: List[SqlParam] = []
        referenced = set()

        def substitute(match) -> str:
            if match.group(1) is None:
                return match.group(0).replace('%', '%%')
            index = int(match.group(1))
            if not 1 <= index <= len(params):
                raise QueryError(
                    f"Placeholder ${index} has no matching parameter ({len(params)} supplied)",
                    engine=self.ENGINE
                )
            ordered.append(params[index - 1])
            referenced.add(index)
            return '%s'

        converted = _NUMBERED_TOKENS.sub(substitute, sql)
        unused = [f"${i}" for i in range(1, len(params) + 1) if i not in referenced]
        if unused:
            raise QueryError(
                f"Parameter(s) {', '.join(unused)} not referenced by the query ({len(params)} supplied)",
                engine=self.ENGINE
            )
        return converted, ordered

    def _schema_name(self) -> str:
        return self.SCHEMA

    def _is_primary_key(self, value: Any) -> bool:
        return bool(value)

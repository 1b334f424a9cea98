"""
Data models for connection settings, schema snapshots and query results
"""

import json
import math
from dataclasses import dataclass, field, asdict, replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from uuid import UUID

from .errors import ConfigValidationError

Cell = Union[str, int, float, bool, None]
SqlParam = Union[str, int, float, bool, None]

DEFAULT_PORTS = {
    'mysql': 3306,
    'postgres': 5432,
}


@dataclass(frozen=True)
class ConnectionConfig:
    """Settings for one physical database connection"""
    engine: str
    database: str
    username: str
    password: str = field(repr=False)
    host: str = 'localhost'
    port: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ConnectionConfig':
        """Build a config from a mapping, accepting `type` and `user` aliases"""
        if not isinstance(data, Mapping):
            raise ConfigValidationError("Connection config must be a mapping")

        engine = data.get('engine', data.get('type'))
        username = data.get('username', data.get('user'))
        missing = [
            name for name, value in (
                ('engine', engine),
                ('database', data.get('database')),
                ('username', username),
                ('password', data.get('password')),
            )
            if value is None
        ]
        if missing:
            raise ConfigValidationError(f"Missing required config: {', '.join(missing)}")

        return cls(
            engine=engine,
            database=data['database'],
            username=username,
            password=data['password'],
            host=data.get('host') or 'localhost',
            port=data.get('port'),
        )

    def with_defaults(self) -> 'ConnectionConfig':
        """Return a copy with the engine's default port filled in"""
        if self.port is not None or self.engine not in DEFAULT_PORTS:
            return self
        return replace(self, port=DEFAULT_PORTS[self.engine])

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        if redact:
            data['password'] = '***'
        return data


@dataclass(frozen=True)
class ColumnSchema:
    """A single column as reported by the engine's catalog"""
    name: str
    type: str
    nullable: bool
    default_value: Optional[str]
    primary_key: bool


@dataclass(frozen=True)
class ForeignKeySchema:
    """A foreign key column and the column it references"""
    column: str
    foreign_table: str
    foreign_column: str
    constraint_name: str


@dataclass(frozen=True)
class TableSchema:
    name: str
    columns: List[ColumnSchema] = field(default_factory=list)
    foreign_keys: List[ForeignKeySchema] = field(default_factory=list)

    @property
    def primary_keys(self) -> List[str]:
        return [col.name for col in self.columns if col.primary_key]


@dataclass(frozen=True)
class DatabaseLayout:
    """Normalized schema snapshot of one database"""
    name: str
    tables: List[TableSchema] = field(default_factory=list)

    def table(self, name: str) -> Optional[TableSchema]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SqlQuery:
    sql: str
    params: Optional[List[SqlParam]] = None

    @classmethod
    def from_value(cls, value: Union['SqlQuery', str, Mapping[str, Any]]) -> 'SqlQuery':
        if isinstance(value, SqlQuery):
            return value
        if isinstance(value, str):
            return cls(sql=value)
        return cls(sql=value['sql'], params=value.get('params'))


@dataclass(frozen=True)
class ExplainQuery(SqlQuery):
    analyze: bool = False

    @classmethod
    def from_value(cls, value: Union['SqlQuery', str, Mapping[str, Any]]) -> 'ExplainQuery':
        if isinstance(value, ExplainQuery):
            return value
        if isinstance(value, SqlQuery):
            return cls(sql=value.sql, params=value.params)
        if isinstance(value, str):
            return cls(sql=value)
        return cls(sql=value['sql'], params=value.get('params'),
                   analyze=bool(value.get('analyze', False)))


@dataclass(frozen=True)
class QueryResult:
    """
    Tabular result of a statement.

    Every row holds exactly one cell per column, in column order.
    """
    columns: List[str]
    rows: List[List[Cell]]
    affected_rows: Optional[int] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExplainResult(QueryResult):
    original_query: str = ''
    with_analysis: bool = False


def to_cell(value: Any) -> Cell:
    """Normalize a driver value to a string, number, boolean or None"""
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return 'NaN'
        return 'Infinity' if value > 0 else '-Infinity'
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID, timedelta)):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError:
            return raw.hex()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def build_rows(columns: Sequence[str], raw_rows: Sequence[Any]) -> List[List[Cell]]:
    """
    Align native rows to `columns`.

    Mapping rows are read by column name and sequence rows by position;
    a field missing from a row becomes None.
    """
    width = len(columns)
    rows = []
    for raw in raw_rows:
        if isinstance(raw, Mapping):
            values = [raw.get(col) for col in columns]
        else:
            values = list(raw)[:width]
            values.extend([None] * (width - len(values)))
        rows.append([to_cell(value) for value in values])
    return rows

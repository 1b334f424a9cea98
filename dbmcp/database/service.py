"""
Session-level operations: connect, inspect, execute, explain, disconnect
"""

import logging
from typing import Any, Callable, Dict, Mapping, Union

from .adapters import DatabaseAdapter
from .errors import UnknownSessionError
from .factory import DatabaseFactory
from .models import ConnectionConfig, DatabaseLayout, ExplainQuery, ExplainResult, QueryResult, SqlQuery
from .registry import ConnectionRegistry, new_session_id

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[Union[ConnectionConfig, Mapping[str, Any]]], DatabaseAdapter]


def build_explain_sql(sql: str, analyze: bool = False) -> str:
    """Prefix a statement with EXPLAIN or EXPLAIN ANALYZE"""
    prefix = "EXPLAIN ANALYZE" if analyze else "EXPLAIN"
    return f"{prefix} {sql}"


class DatabaseService:
    """Resolve session ids through the registry and delegate to adapters"""

    def __init__(self, registry: ConnectionRegistry,
                 adapter_factory: AdapterFactory = DatabaseFactory.create_adapter):
        self.registry = registry
        self.adapter_factory = adapter_factory

    def connect(self, config: Union[ConnectionConfig, Mapping[str, Any]]) -> str:
        """Open a connection and register it under a new session id"""
        adapter = self.adapter_factory(config)
        adapter.connect()

        connection_id = new_session_id()
        self.registry.put(connection_id, adapter)
        logger.info(f"Registered {adapter.ENGINE} connection {connection_id}")
        return connection_id

    def get_adapter(self, connection_id: str) -> DatabaseAdapter:
        adapter = self.registry.get(connection_id)
        if adapter is None:
            raise UnknownSessionError(connection_id)
        return adapter

    def introspect(self, connection_id: str) -> DatabaseLayout:
        return self.get_adapter(connection_id).introspect()

    def execute(self, connection_id: str, query: Union[SqlQuery, str, Mapping[str, Any]]) -> QueryResult:
        return self.get_adapter(connection_id).execute(SqlQuery.from_value(query))

    def explain(self, connection_id: str, query: Union[ExplainQuery, str, Mapping[str, Any]]) -> ExplainResult:
        """Run the statement under EXPLAIN and echo the original query"""
        query = ExplainQuery.from_value(query)
        adapter = self.get_adapter(connection_id)

        result = adapter.execute(SqlQuery(sql=build_explain_sql(query.sql, query.analyze), params=query.params))
        return ExplainResult(
            columns=result.columns,
            rows=result.rows,
            affected_rows=result.affected_rows,
            original_query=query.sql,
            with_analysis=query.analyze,
        )

    def disconnect(self, connection_id: str) -> bool:
        """Close and forget a session; False when the id is unknown"""
        removed = self.registry.delete(connection_id)
        if removed:
            logger.info(f"Closed connection {connection_id}")
        return removed

    def close_all(self) -> int:
        return self.registry.clear()

    def status(self) -> Dict[str, Any]:
        return {
            'supported_engines': DatabaseFactory.get_supported_types(),
            **self.registry.info(),
        }

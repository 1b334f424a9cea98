"""
Database factory for creating appropriate database adapters
"""

from typing import Any, Dict, List, Mapping, Type, Union

from .adapters import DatabaseAdapter, MySQLAdapter, PostgreSQLAdapter
from .errors import ConfigValidationError, UnsupportedEngineError
from .models import ConnectionConfig

# Closed set of engines. Adding an engine means adding an adapter class here.
ADAPTERS: Dict[str, Type[DatabaseAdapter]] = {
    'mysql': MySQLAdapter,
    'postgres': PostgreSQLAdapter,
}

# host and port fall back to localhost and the engine default port
REQUIRED_FIELDS = ['database', 'username', 'password']


class DatabaseFactory:
    """Factory class to create appropriate database adapter"""

    @staticmethod
    def create_adapter(config: Union[ConnectionConfig, Mapping[str, Any]]) -> DatabaseAdapter:
        """
        Validate a connection config and build the matching adapter.

        The adapter is returned disconnected; no I/O happens here.

        Raises:
            UnsupportedEngineError: engine tag is not mysql or postgres
            ConfigValidationError: any other structural problem
        """
        if not isinstance(config, ConnectionConfig):
            config = ConnectionConfig.from_dict(config)

        config = DatabaseFactory.validate_config(config)
        return ADAPTERS[config.engine](config)

    @staticmethod
    def validate_config(config: ConnectionConfig) -> ConnectionConfig:
        """Check a config and return it with the engine default port applied"""
        if not isinstance(config.engine, str) or config.engine not in ADAPTERS:
            raise UnsupportedEngineError(
                f"Unsupported database type: {config.engine}. "
                f"Supported: {', '.join(DatabaseFactory.get_supported_types())}",
                engine=str(config.engine)
            )

        for name in ('host', 'database', 'username'):
            value = getattr(config, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigValidationError(f"'{name}' must be a non-empty string", engine=config.engine)

        if not isinstance(config.password, str):
            raise ConfigValidationError("'password' must be a string", engine=config.engine)

        config = config.with_defaults()
        port = config.port
        if isinstance(port, bool) or not isinstance(port, int) or not 0 < port <= 65535:
            raise ConfigValidationError(
                f"'port' must be a positive integer up to 65535, got {port!r}",
                engine=config.engine
            )

        return config

    @staticmethod
    def get_supported_types() -> List[str]:
        """Get list of supported database types"""
        return list(ADAPTERS)

    @staticmethod
    def get_required_config(db_type: str) -> List[str]:
        """Get required configuration keys for database type"""
        if db_type not in ADAPTERS:
            return []
        return list(REQUIRED_FIELDS)


create_adapter = DatabaseFactory.create_adapter

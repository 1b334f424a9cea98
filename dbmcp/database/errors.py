"""
Error taxonomy shared by adapters, the factory, the registry and the service
"""

from typing import Optional


class DatabaseError(Exception):
    """Base exception for all database tool errors"""

    def __init__(self, message: str, engine: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.engine = engine
        self.original_error = original_error


class ConfigValidationError(DatabaseError):
    """Connection configuration is malformed or incomplete"""
    pass


class UnsupportedEngineError(ConfigValidationError):
    """Engine tag is outside the supported set"""
    pass


class DatabaseConnectionError(DatabaseError):
    """Network or authentication failure while connecting"""
    pass


class NotConnectedError(DatabaseError):
    """Operation invoked on an adapter without a live connection"""
    pass


class UnknownSessionError(DatabaseError):
    """No live connection is registered under the given id"""

    def __init__(self, connection_id: str):
        super().__init__(f"No connection found for ID: {connection_id}")
        self.connection_id = connection_id


class QueryError(DatabaseError):
    """The database rejected the submitted SQL"""
    pass

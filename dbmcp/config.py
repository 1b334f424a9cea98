"""
Configuration from environment variables, .env files and dbmcp.json
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from .database.errors import ConfigValidationError
from .database.models import ConnectionConfig

CONNECTION_FILE = "dbmcp.json"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigValidationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigValidationError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Server settings"""
    max_connections: int = 100
    connection_ttl: float = 300.0
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8080

    @classmethod
    def from_env(cls) -> 'Settings':
        load_dotenv()
        settings = cls(
            max_connections=_env_int("DBMCP_MAX_CONNECTIONS", cls.max_connections),
            connection_ttl=_env_float("DBMCP_CONNECTION_TTL", cls.connection_ttl),
            log_level=os.getenv("DBMCP_LOG_LEVEL", cls.log_level),
            host=os.getenv("HOST", cls.host),
            port=_env_int("PORT", cls.port),
        )
        if settings.max_connections < 1:
            raise ConfigValidationError("DBMCP_MAX_CONNECTIONS must be positive")
        if settings.connection_ttl <= 0:
            raise ConfigValidationError("DBMCP_CONNECTION_TTL must be positive")
        return settings


def connection_config_from_env() -> ConnectionConfig:
    """Build a connection config from DB_* environment variables"""
    load_dotenv()
    port = os.getenv("DB_PORT")
    return ConnectionConfig(
        engine=os.getenv("DB_ENGINE", "mysql"),
        database=os.getenv("DB_NAME", ""),
        username=os.getenv("DB_USER", ""),
        password=os.getenv("DB_PASSWORD", ""),
        host=os.getenv("DB_HOST", "localhost"),
        port=_env_int("DB_PORT", 0) if port else None,
    )


def load_connection_file(path: Union[str, Path] = CONNECTION_FILE) -> Optional[ConnectionConfig]:
    """
    Read connection settings from a JSON file.

    The file may hold the config itself or wrap it as {"config": {...}}.
    Returns None when the file does not exist.
    """
    config_path = Path(path)
    if not config_path.exists():
        return None

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigValidationError(f"Cannot read {config_path}: {e}")

    if isinstance(data, dict) and isinstance(data.get("config"), dict):
        data = data["config"]
    return ConnectionConfig.from_dict(data)

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from dbmcp.config import Settings
from dbmcp.database import (
    ConfigValidationError,
    ConnectionRegistry,
    DatabaseConnectionError,
    DatabaseError,
    DatabaseService,
    ExplainQuery,
    NotConnectedError,
    QueryError,
    SqlQuery,
    UnknownSessionError,
)
from dbmcp.database.models import SqlParam
from dbmcp.utils import format_database_layout, format_query_summary, setup_logging

logger = logging.getLogger("dbmcp.server")

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

TOOLS = {
    "connect": (
        "Connect to a database. Use the connection information provided in a dbmcp.json file. "
        "If one does not exist, prompt to create one. If you already have a connection_id, you "
        "should not need to connect again. Use inspect_database to get the schema information."
    ),
    "inspect_database": (
        "Inspect the database schema: tables, columns, primary keys and foreign keys. "
        "Run this first to gain insight into the database structure."
    ),
    "execute_query": (
        "Execute a SQL query written for the connected database's dialect. Use ? placeholders "
        "for MySQL and $1, $2, ... for PostgreSQL. Do not execute INSERT, UPDATE, or DELETE "
        "queries. Include reasonable LIMIT clauses to avoid large result sets."
    ),
    "explain_query": (
        "Generate an execution plan for a SQL query using EXPLAIN. Use analyze: true for "
        "runtime statistics (the statement is actually executed)."
    ),
    "disconnect": "Close a connection when it is no longer needed.",
}

# Request Models
class ConnectionConfigModel(BaseModel):
    engine: str = Field(..., description="mysql or postgres")
    host: str = "localhost"
    port: Optional[int] = None
    database: str
    username: str
    password: str


class ConnectRequest(BaseModel):
    config: ConnectionConfigModel


class SessionRequest(BaseModel):
    connection_id: str = Field(..., pattern=UUID_PATTERN)


class SqlQueryModel(BaseModel):
    sql: str = Field(..., min_length=1)
    params: Optional[List[SqlParam]] = None


class ExplainQueryModel(SqlQueryModel):
    analyze: bool = Field(False, description="Include actual execution statistics (slower but more detailed)")


class QueryRequest(SessionRequest):
    query: SqlQueryModel


class ExplainRequest(SessionRequest):
    query: ExplainQueryModel


ERROR_STATUS = [
    (ConfigValidationError, 422),
    (UnknownSessionError, 404),
    (NotConnectedError, 409),
    (DatabaseConnectionError, 502),
    (QueryError, 400),
]


def error_status(error: DatabaseError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


def get_service(request: Request) -> DatabaseService:
    return request.app.state.service


def create_app(service: Optional[DatabaseService] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the tool server around an explicitly constructed service"""
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    if service is None:
        registry = ConnectionRegistry(max_size=settings.max_connections, ttl=settings.connection_ttl)
        service = DatabaseService(registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        closed = app.state.service.close_all()
        if closed:
            logger.info(f"Closed {closed} connection(s) on shutdown")

    app = FastAPI(title="dbmcp", version="1.0.0", lifespan=lifespan)
    app.state.service = service
    app.state.settings = settings

    @app.exception_handler(DatabaseError)
    async def database_error_handler(request: Request, exc: DatabaseError):
        return JSONResponse(
            status_code=error_status(exc),
            content={"error": type(exc).__name__, "detail": str(exc)}
        )

    @app.get("/tools")
    def list_tools():
        """Describe the available tools"""
        return {"tools": [{"name": name, "description": text} for name, text in TOOLS.items()]}

    @app.get("/status")
    def status(service: DatabaseService = Depends(get_service)):
        """Get server status"""
        return {"status": "running", **service.status()}

    @app.post("/connect")
    def connect(req: ConnectRequest, service: DatabaseService = Depends(get_service)):
        """Connect to a database and return a connection id"""
        connection_id = service.connect(req.config.model_dump())
        return {
            "connection_id": connection_id,
            "text": f"Connected to database. Connection ID: {connection_id}",
        }

    @app.post("/inspect_database")
    def inspect_database(req: SessionRequest, service: DatabaseService = Depends(get_service)):
        """Inspect the database schema"""
        layout = service.introspect(req.connection_id)
        return {
            **layout.to_dict(),
            "text": f"Database schema for: {layout.name}\n\n{format_database_layout(layout)}",
        }

    @app.post("/execute_query")
    def execute_query(req: QueryRequest, service: DatabaseService = Depends(get_service)):
        """Execute a SQL query"""
        result = service.execute(req.connection_id, SqlQuery(sql=req.query.sql, params=req.query.params))
        return {**result.to_dict(), "text": format_query_summary(result)}

    @app.post("/explain_query")
    def explain_query(req: ExplainRequest, service: DatabaseService = Depends(get_service)):
        """Generate an execution plan for a SQL query"""
        result = service.explain(
            req.connection_id,
            ExplainQuery(sql=req.query.sql, params=req.query.params, analyze=req.query.analyze)
        )
        return {**result.to_dict(), "text": format_query_summary(result)}

    @app.post("/disconnect")
    def disconnect(req: SessionRequest, service: DatabaseService = Depends(get_service)):
        """Close a connection"""
        return {"connection_id": req.connection_id, "disconnected": service.disconnect(req.connection_id)}

    return app


app = create_app()


def run():
    """Run the tool server"""
    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)

if __name__ == "__main__":
    run()

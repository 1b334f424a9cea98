"""
Pytest configuration and shared fixtures.

Driver connections are replaced by in-memory fakes that answer queries
through a `responder(sql, params) -> Result` callable, so no database
server is needed.
"""

import psycopg2
import pymysql
import pytest

from dbmcp.database.adapters import (
    MYSQL_COLUMNS_QUERY,
    MYSQL_DATABASE_NAME_QUERY,
    MYSQL_FOREIGN_KEYS_QUERY,
    MYSQL_TABLES_QUERY,
    POSTGRES_COLUMNS_QUERY,
    POSTGRES_DATABASE_NAME_QUERY,
    POSTGRES_FOREIGN_KEYS_QUERY,
    POSTGRES_TABLES_QUERY,
)
from fakes import FakeClock, FakeDriver, Result, StubFactory


@pytest.fixture
def fake_mysql(monkeypatch):
    driver = FakeDriver()
    monkeypatch.setattr(pymysql, "connect", driver.connect)
    return driver


@pytest.fixture
def fake_postgres(monkeypatch):
    driver = FakeDriver()
    monkeypatch.setattr(psycopg2, "connect", driver.connect)
    return driver


@pytest.fixture
def mysql_config():
    return {
        "engine": "mysql",
        "host": "db.local",
        "database": "shop",
        "username": "reader",
        "password": "secret",
    }


@pytest.fixture
def postgres_config():
    return {
        "engine": "postgres",
        "host": "db.local",
        "database": "shop",
        "username": "reader",
        "password": "secret",
    }


# Catalog rows for customers(id PK), orders(id PK, customer_id FK -> customers.id)
# and order_items(order_id, product_id) with a composite primary key.

MYSQL_COLUMNS = {
    "customers": [
        ("id", "int", "NO", None, "PRI"),
        ("name", "varchar", "NO", None, ""),
    ],
    "orders": [
        ("id", "int", "NO", None, "PRI"),
        ("customer_id", "int", "YES", None, "MUL"),
    ],
    "order_items": [
        ("order_id", "int", "NO", None, "PRI"),
        ("product_id", "int", "NO", None, "PRI"),
        ("quantity", "int", "NO", "1", ""),
    ],
}

MYSQL_FOREIGN_KEYS = {
    "customers": [],
    "orders": [("customer_id", "customers", "id", "orders_ibfk_1")],
    "order_items": [("order_id", "orders", "id", "order_items_ibfk_1")],
}

POSTGRES_COLUMNS = {
    "customers": [
        ("id", "integer", "NO", "nextval('customers_id_seq'::regclass)", True),
        ("name", "text", "NO", None, False),
    ],
    "orders": [
        ("id", "integer", "NO", "nextval('orders_id_seq'::regclass)", True),
        ("customer_id", "integer", "YES", None, False),
    ],
    "order_items": [
        ("order_id", "integer", "NO", None, True),
        ("product_id", "integer", "NO", None, True),
        ("quantity", "integer", "NO", "1", False),
    ],
}

POSTGRES_FOREIGN_KEYS = {
    "customers": [],
    "orders": [("customer_id", "customers", "id", "orders_customer_id_fkey")],
    "order_items": [("order_id", "orders", "id", "order_items_order_id_fkey")],
}

TABLE_NAMES = ["customers", "orders", "order_items"]


@pytest.fixture
def mysql_catalog():
    def responder(sql, params):
        if sql == MYSQL_DATABASE_NAME_QUERY:
            return Result(["db_name"], [("shop",)])
        if sql == MYSQL_TABLES_QUERY:
            return Result(["TABLE_NAME"], [(name,) for name in TABLE_NAMES])
        if sql == MYSQL_COLUMNS_QUERY:
            return Result(["COLUMN_NAME", "DATA_TYPE", "IS_NULLABLE", "COLUMN_DEFAULT", "COLUMN_KEY"],
                          MYSQL_COLUMNS[params["table_name"]])
        if sql == MYSQL_FOREIGN_KEYS_QUERY:
            return Result(["COLUMN_NAME", "REFERENCED_TABLE_NAME", "REFERENCED_COLUMN_NAME", "CONSTRAINT_NAME"],
                          MYSQL_FOREIGN_KEYS[params["table_name"]])
        raise AssertionError(f"unexpected query: {sql}")
    return responder


@pytest.fixture
def postgres_catalog():
    def responder(sql, params):
        if sql == POSTGRES_DATABASE_NAME_QUERY:
            return Result(["db_name"], [("shop",)])
        if sql == POSTGRES_TABLES_QUERY:
            return Result(["table_name"], [(name,) for name in TABLE_NAMES])
        if sql == POSTGRES_COLUMNS_QUERY:
            return Result(["column_name", "data_type", "is_nullable", "column_default", "is_primary_key"],
                          POSTGRES_COLUMNS[params["table_name"]])
        if sql == POSTGRES_FOREIGN_KEYS_QUERY:
            return Result(["column_name", "foreign_table_name", "foreign_column_name", "constraint_name"],
                          POSTGRES_FOREIGN_KEYS[params["table_name"]])
        raise AssertionError(f"unexpected query: {sql}")
    return responder


@pytest.fixture
def stub_factory():
    return StubFactory()


@pytest.fixture
def clock():
    return FakeClock()

"""
Test configuration and fixtures.
"""
import pytest
from pathlib import Path
from unittest.mock import Mock

from sqlalchemy import create_engine, text

from tablesource.core.config import DatabaseConfig, DatabaseType
from tablesource.database.connection import SourceDatabase
from tablesource.extraction.publisher import InMemoryArgumentStore


SCHEMA_STATEMENTS = [
    """CREATE TABLE orders (
        id INTEGER PRIMARY KEY,
        customer VARCHAR(50) NOT NULL,
        amount NUMERIC(10, 2),
        created DATE
    )""",
    "CREATE TABLE empty_tbl (id INTEGER PRIMARY KEY, label TEXT)",
    "CREATE TABLE ord_1 (id INTEGER PRIMARY KEY, note TEXT)",
    "CREATE TABLE ord_2 (id INTEGER PRIMARY KEY, note TEXT)",
    "CREATE TABLE customer (id INTEGER PRIMARY KEY, name VARCHAR(100) NOT NULL)",
    "CREATE TABLE events (kind VARCHAR(20), seen_at TIMESTAMP)",
    "CREATE VIEW big_orders AS SELECT id, customer FROM orders WHERE id > 1",
]

DATA_STATEMENTS = [
    """INSERT INTO orders (id, customer, amount, created) VALUES
        (1, 'alice', 19.99, '2024-01-05'),
        (2, 'bob', 5.5, '2024-02-10'),
        (3, 'alice', 120.25, '2024-03-15')""",
    "INSERT INTO ord_1 (id, note) VALUES (1, 'first'), (2, 'second')",
    "INSERT INTO ord_2 (id, note) VALUES (10, 'tenth')",
    "INSERT INTO customer (id, name) VALUES (1, 'alice'), (2, 'bob')",
    """INSERT INTO events (kind, seen_at) VALUES
        ('login', '2024-01-05 10:00:00'),
        ('logout', '2024-01-05 11:30:00'),
        (NULL, NULL)""",
]

ALL_TABLES = ["customer", "empty_tbl", "events", "ord_1", "ord_2", "orders"]


def run_statements(db_path: Path, statements):
    """Execute raw SQL statements against a SQLite file."""
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.begin() as conn:
            for statement in statements:
                conn.execute(text(statement))
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_path(tmp_path) -> Path:
    """SQLite database file with the sample tables."""
    db_path = tmp_path / "source.db"
    run_statements(db_path, SCHEMA_STATEMENTS + DATA_STATEMENTS)
    return db_path


@pytest.fixture
def db_config(sqlite_path) -> DatabaseConfig:
    """Database configuration pointing at the sample SQLite file."""
    return DatabaseConfig(database_type=DatabaseType.SQLITE, database=str(sqlite_path))


@pytest.fixture
def source_db(db_config):
    """Source database over the sample SQLite file."""
    database = SourceDatabase(db_config)
    yield database
    database.close()


@pytest.fixture
def connection(source_db):
    """Open connection to the sample database."""
    with source_db.connect() as conn:
        yield conn


@pytest.fixture
def argument_store() -> InMemoryArgumentStore:
    """Empty in-memory argument store."""
    return InMemoryArgumentStore()


@pytest.fixture
def mock_database():
    """Mock source database for components that only need its metadata."""
    database = Mock(spec=SourceDatabase)
    database.catalog = "testdb"
    database.driver = Mock()
    database.driver.normalize_identifier.side_effect = lambda name: name
    return database


@pytest.fixture
def execute_sql(sqlite_path):
    """Run extra SQL statements against the sample database."""
    def _execute(*statements):
        run_statements(sqlite_path, list(statements))
    return _execute


@pytest.fixture
def all_tables():
    """Names of every base table in the sample database, sorted."""
    return list(ALL_TABLES)

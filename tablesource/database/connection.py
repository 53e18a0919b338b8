"""
Source database connection management using SQLAlchemy.
"""

import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from tablesource.core.config import DatabaseConfig
from tablesource.core.exceptions import DatabaseError
from tablesource.core.logging import LoggerMixin
from tablesource.database.drivers import DatabaseDriver, DatabaseDriverFactory


class SourceDatabase(LoggerMixin):
    """
    A relational source reachable through one SQLAlchemy engine.

    Every extraction component receives this object (or a connection opened
    from it) instead of building its own engine, so the driver is chosen once
    from configuration and never hardcoded downstream.
    """

    def __init__(self, config: DatabaseConfig, driver: Optional[DatabaseDriver] = None):
        """
        Initialize source database with configuration.

        Args:
            config: Database configuration
            driver: Driver to use instead of the one registered for the database type
        """
        self.config = config
        self.driver = driver or DatabaseDriverFactory.create_driver(config)
        self._engine: Optional[Engine] = None
        self._create_engine()

    def _create_engine(self) -> None:
        """Create SQLAlchemy engine from the driver's URL and options."""
        try:
            url = self.driver.build_connection_url()
            self._engine = create_engine(url, **self.driver.get_engine_options())
            self._setup_event_listeners()
            self.logger.info(f"Database engine created for {url.get_backend_name()}")
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to create database engine: {e}")
            raise DatabaseError(f"Engine creation failed: {e}")
        except ImportError as e:
            self.logger.error(f"Database driver module is not installed: {e}")
            raise DatabaseError(f"Driver not available: {e}")

    def _setup_event_listeners(self) -> None:
        """Setup SQLAlchemy event listeners for connection management."""
        if not self._engine:
            return

        @event.listens_for(self._engine, "checkout")
        def checkout_handler(dbapi_connection, connection_record, connection_proxy):
            self.logger.debug("Connection checked out from pool")

        @event.listens_for(self._engine, "checkin")
        def checkin_handler(dbapi_connection, connection_record):
            self.logger.debug("Connection returned to pool")

        @event.listens_for(self._engine, "invalidate")
        def invalidate_handler(dbapi_connection, connection_record, exception):
            self.logger.warning(f"Connection invalidated: {exception}")

    @property
    def engine(self) -> Engine:
        """Get SQLAlchemy engine."""
        if not self._engine:
            raise DatabaseError("Database engine not initialized")
        return self._engine

    @property
    def catalog(self) -> Optional[str]:
        """Name of the database (catalog) this source points at."""
        return self.engine.url.database

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """
        Open a connection scoped to the with-block.

        The connection is released when the block exits, whether normally,
        through an exception, or because a generator holding it was closed.
        Driver errors are re-raised as DatabaseError, as is any failure to
        acquire the connection; other exceptions from the block pass through
        unchanged.

        Yields:
            Connection: SQLAlchemy connection
        """
        connection = None
        start_time = time.time()
        try:
            connection = self._acquire()
            yield connection
        except SQLAlchemyError as e:
            self.logger.error(f"Database connection error: {e}")
            if connection is not None:
                connection.invalidate()
            raise DatabaseError(f"Connection error: {e}")
        finally:
            if connection is not None:
                connection.close()
                self.logger.debug(f"Database connection released after {time.time() - start_time:.3f}s")

    def _acquire(self) -> Connection:
        engine = self.engine
        try:
            connection = engine.connect()
        except SQLAlchemyError:
            raise
        except Exception as e:
            # DBAPI modules reject bad connect arguments with plain TypeError/ValueError
            self.logger.error(f"Failed to open a {engine.url.get_backend_name()} connection: {e}")
            raise DatabaseError(f"Connection error: {e}", details={"cause": type(e).__name__}) from e
        self.logger.debug("Database connection acquired")
        return connection

    def list_tables(self, connection: Connection, schema: Optional[str] = None,
                    include_views: bool = False) -> List[str]:
        """
        List table names visible to the connection.

        Args:
            connection: Open connection
            schema: Schema (namespace) to list, default schema when None
            include_views: Also list views

        Returns:
            Sorted, de-duplicated list of names
        """
        inspector = inspect(connection)
        names = set(inspector.get_table_names(schema=schema))
        if include_views:
            names.update(inspector.get_view_names(schema=schema))
        self.logger.debug(f"Found {len(names)} relations in schema {schema or 'default'}")
        return sorted(names)

    def test_connection(self) -> bool:
        """
        Test database connection.

        Returns:
            bool: True if connection is healthy
        """
        return self.driver.test_connection(self.engine)

    def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on database connection.

        Returns:
            Dict with health check results
        """
        try:
            with self.connect() as conn:
                conn.execute(text(self.driver.get_health_check_query())).fetchone()
                version = conn.execute(text(self.driver.get_version_query())).scalar()
            return {
                "status": "healthy",
                "message": "Database connection is healthy",
                "version": str(version),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        except DatabaseError as e:
            self.logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "message": f"Database connection failed: {e}",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

    def close(self) -> None:
        """Close database connections and dispose engine."""
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self.logger.info("Database connections closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

"""
Multi-database driver implementation for SQLAlchemy.
Supports MySQL, PostgreSQL, Oracle, SQL Server, MariaDB and SQLite.
"""

from typing import Dict, Any, Optional, List, Type
from abc import ABC, abstractmethod
from sqlalchemy import Engine, text
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.pool import StaticPool

from tablesource.core.config import DatabaseConfig, DatabaseType
from tablesource.core.exceptions import ConfigurationError
from tablesource.core.logging import LoggerMixin


class DatabaseDriver(ABC, LoggerMixin):
    """Abstract base class for database drivers."""

    drivername: str = ""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        if not config.url:
            self._validate_config()

    @abstractmethod
    def _validate_config(self) -> None:
        """Validate database configuration."""
        pass

    @abstractmethod
    def get_engine_options(self) -> Dict[str, Any]:
        """Get database-specific engine options."""
        pass

    def build_connection_url(self) -> URL:
        """Build database connection URL."""
        if self.config.url:
            return make_url(self.config.url)
        return URL.create(
            self.drivername,
            username=self.config.user or None,
            password=self.config.password or None,
            host=self.config.host,
            port=self.config.port,
            database=self.config.name,
            query=self._url_query()
        )

    def _url_query(self) -> Dict[str, str]:
        return {}

    def get_health_check_query(self) -> str:
        """Get database-specific health check query."""
        return "SELECT 1"

    @abstractmethod
    def get_version_query(self) -> str:
        """Get database version query."""
        pass

    def normalize_identifier(self, name: str) -> str:
        """Normalize a user-supplied table or schema name to the form reported by metadata."""
        return name

    def test_connection(self, engine: Engine) -> bool:
        """Test database connection with specific query."""
        try:
            with engine.connect() as conn:
                result = conn.execute(text(self.get_health_check_query()))
                return result.scalar() == 1
        except Exception as e:
            self.logger.error(f"Connection test failed: {e}")
            return False

    def _pool_options(self) -> Dict[str, Any]:
        return {
            'pool_size': self.config.pool_size,
            'max_overflow': self.config.max_overflow,
            'pool_timeout': self.config.pool_timeout,
            'pool_recycle': 3600,
            'pool_pre_ping': True,
        }

    def _require(self, label: str) -> None:
        if not self.config.user:
            raise ConfigurationError(f"{label} user is required")
        if not self.config.name:
            raise ConfigurationError(f"{label} database name is required")


class PostgreSQLDriver(DatabaseDriver):
    """PostgreSQL database driver."""

    drivername = "postgresql+psycopg2"

    def _validate_config(self) -> None:
        """Validate PostgreSQL configuration."""
        self._require("PostgreSQL")

    def get_engine_options(self) -> Dict[str, Any]:
        """Get PostgreSQL-specific engine options."""
        options = self._pool_options()
        options['connect_args'] = {
            'connect_timeout': 10,
            'application_name': 'tablesource'
        }
        return options

    def get_version_query(self) -> str:
        """Get PostgreSQL version query."""
        return "SELECT version()"


class MySQLDriver(DatabaseDriver):
    """MySQL database driver."""

    drivername = "mysql+pymysql"

    def _validate_config(self) -> None:
        """Validate MySQL configuration."""
        self._require("MySQL")

    def get_engine_options(self) -> Dict[str, Any]:
        """Get MySQL-specific engine options."""
        options = self._pool_options()
        options['connect_args'] = {
            'connect_timeout': 10,
            'charset': 'utf8mb4',
            'use_unicode': True
        }
        return options

    def get_version_query(self) -> str:
        """Get MySQL version query."""
        return "SELECT VERSION()"


class MariaDBDriver(MySQLDriver):
    """MariaDB database driver (wire compatible with MySQL)."""

    def _validate_config(self) -> None:
        """Validate MariaDB configuration."""
        self._require("MariaDB")


class OracleDriver(DatabaseDriver):
    """Oracle database driver."""

    drivername = "oracle+oracledb"

    def _validate_config(self) -> None:
        """Validate Oracle configuration."""
        self._require("Oracle")

    def build_connection_url(self) -> URL:
        """Build Oracle connection URL using the database name as service name."""
        if self.config.url:
            return make_url(self.config.url)
        return URL.create(
            self.drivername,
            username=self.config.user,
            password=self.config.password or None,
            host=self.config.host,
            port=self.config.port,
            query={'service_name': self.config.name}
        )

    def get_engine_options(self) -> Dict[str, Any]:
        """Get Oracle-specific engine options."""
        return self._pool_options()

    def get_health_check_query(self) -> str:
        """Get Oracle health check query."""
        return "SELECT 1 FROM DUAL"

    def get_version_query(self) -> str:
        """Get Oracle version query."""
        return "SELECT * FROM V$VERSION WHERE BANNER LIKE 'Oracle%'"

    def normalize_identifier(self, name: str) -> str:
        """Oracle stores unquoted names upper case; SQLAlchemy reports them lower case."""
        if name.isupper():
            return name.lower()
        return name


class SQLServerDriver(DatabaseDriver):
    """SQL Server database driver."""

    drivername = "mssql+pyodbc"

    def _validate_config(self) -> None:
        """Validate SQL Server configuration."""
        self._require("SQL Server")

    def _url_query(self) -> Dict[str, str]:
        return {'driver': 'ODBC Driver 17 for SQL Server'}

    def get_engine_options(self) -> Dict[str, Any]:
        """Get SQL Server-specific engine options."""
        options = self._pool_options()
        options['connect_args'] = {'timeout': 10}
        return options

    def get_version_query(self) -> str:
        """Get SQL Server version query."""
        return "SELECT @@VERSION"


class SQLiteDriver(DatabaseDriver):
    """SQLite database driver (file or in-memory)."""

    drivername = "sqlite"

    def _validate_config(self) -> None:
        """Validate SQLite configuration."""
        if not self.config.name:
            raise ConfigurationError("SQLite database path is required")

    def build_connection_url(self) -> URL:
        """Build SQLite connection URL."""
        if self.config.url:
            return make_url(self.config.url)
        return URL.create(self.drivername, database=self.config.name)

    def _is_memory(self) -> bool:
        database = self.build_connection_url().database
        return not database or database == ":memory:"

    def get_engine_options(self) -> Dict[str, Any]:
        """Get SQLite-specific engine options."""
        options: Dict[str, Any] = {'connect_args': {'check_same_thread': False}}
        if self._is_memory():
            # every connection must see the same in-memory database
            options['poolclass'] = StaticPool
        return options

    def get_version_query(self) -> str:
        """Get SQLite version query."""
        return "SELECT sqlite_version()"


class DatabaseDriverFactory:
    """Factory for creating database drivers."""

    _drivers: Dict[DatabaseType, Type[DatabaseDriver]] = {
        DatabaseType.POSTGRESQL: PostgreSQLDriver,
        DatabaseType.MYSQL: MySQLDriver,
        DatabaseType.MARIADB: MariaDBDriver,
        DatabaseType.ORACLE: OracleDriver,
        DatabaseType.MSSQL: SQLServerDriver,
        DatabaseType.SQLITE: SQLiteDriver,
    }

    @classmethod
    def register(cls, database_type: DatabaseType, driver_class: Type[DatabaseDriver]) -> None:
        """
        Register a driver class for a database type.

        Args:
            database_type: Database type
            driver_class: Driver class to register
        """
        cls._drivers[database_type] = driver_class

    @classmethod
    def create_driver(cls, config: DatabaseConfig) -> DatabaseDriver:
        """
        Create database driver based on configuration.

        Args:
            config: Database configuration

        Returns:
            DatabaseDriver instance

        Raises:
            ConfigurationError: If driver is not supported
        """
        database_type = cls.resolve_database_type(config)
        driver_class: Optional[Type[DatabaseDriver]] = cls._drivers.get(database_type)

        if driver_class is None:
            raise ConfigurationError(f"Unsupported database type: {database_type.value}")

        return driver_class(config)

    @classmethod
    def resolve_database_type(cls, config: DatabaseConfig) -> DatabaseType:
        """
        Database type a configuration connects to.

        A full URL decides by its backend name; ``database_type`` only applies
        to connections assembled from the individual fields.
        """
        if not config.url:
            return config.database_type

        try:
            backend = make_url(config.url).get_backend_name()
        except ArgumentError as e:
            raise ConfigurationError(f"Invalid database URL: {e}")

        try:
            return DatabaseType(backend)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported database backend in URL: {backend}",
                details={"supported": cls.get_supported_drivers()}
            )

    @classmethod
    def get_supported_drivers(cls) -> List[str]:
        """Get list of supported database types."""
        return [database_type.value for database_type in cls._drivers]

    @classmethod
    def is_driver_supported(cls, database_type: DatabaseType) -> bool:
        """Check if a database type is supported."""
        return database_type in cls._drivers

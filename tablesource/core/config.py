"""
Configuration management system for the table source.
Supports loading from YAML/JSON files and environment variables.
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Any, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError

# Load environment variables from .env file
load_dotenv()


DEFAULT_ARGUMENT_PREFIX = "multisink."
DEFAULT_TABLE_NAME_FIELD = "tablename"


class DatabaseType(Enum):
    """Supported database types"""
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    ORACLE = "oracle"
    MSSQL = "mssql"
    MARIADB = "mariadb"
    SQLITE = "sqlite"


class DatabaseConfig(BaseModel):
    """Database connection settings"""
    database_type: DatabaseType = DatabaseType.POSTGRESQL
    host: str = "localhost"
    port: int = 5432
    database: str = ""
    user: str = ""
    password: str = ""
    url: Optional[str] = None  # full SQLAlchemy URL, overrides the fields above
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30

    @property
    def name(self) -> str:
        """Database (catalog) name"""
        return self.database


class TableSelectionMode(Enum):
    """How the set of tables to extract is chosen"""
    EXPLICIT = "explicit"
    PATTERN = "pattern"


class PatternSyntax(Enum):
    """Syntax of include/exclude table patterns"""
    GLOB = "glob"
    REGEX = "regex"


class ExtractionConfig(BaseModel):
    """Extraction settings for one logical input"""
    reference_name: str = "multitable"
    mode: TableSelectionMode = TableSelectionMode.PATTERN

    # Explicit mode
    tables: List[str] = Field(default_factory=list)

    # Pattern mode
    schema_name: Optional[str] = None
    include_patterns: List[str] = Field(default_factory=list)
    exclude_patterns: List[str] = Field(default_factory=list)
    pattern_syntax: PatternSyntax = PatternSyntax.GLOB
    include_views: bool = False

    # Split planning
    split_size: Optional[int] = None  # target rows per split
    split_columns: Dict[str, str] = Field(default_factory=dict)  # table -> bound column

    # Reading
    fetch_size: int = 1000
    table_name_field: str = DEFAULT_TABLE_NAME_FIELD
    argument_prefix: str = DEFAULT_ARGUMENT_PREFIX

    @field_validator('split_size')
    @classmethod
    def validate_split_size(cls, v):
        if v is not None and v <= 0:
            raise ValueError("split_size must be positive")
        return v

    @field_validator('fetch_size')
    @classmethod
    def validate_fetch_size(cls, v):
        if v <= 0:
            raise ValueError("fetch_size must be positive")
        return v

    @model_validator(mode='after')
    def validate_selection(self):
        if self.mode == TableSelectionMode.EXPLICIT and not self.tables:
            raise ValueError("explicit mode requires at least one table")
        if self.pattern_syntax == PatternSyntax.REGEX:
            for pattern in self.include_patterns + self.exclude_patterns:
                try:
                    re.compile(pattern)
                except re.error as e:
                    raise ValueError(f"Invalid table pattern '{pattern}': {e}")
        return self

    def split_column_for(self, table_name: str) -> Optional[str]:
        """Get the bound column override for a table, if any"""
        return self.split_columns.get(table_name)


LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def _check_level(level: str) -> str:
    if level.upper() not in LOG_LEVELS:
        raise ValueError(f"Unknown log level '{level}', expected one of {', '.join(LOG_LEVELS)}")
    return level.upper()


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[component]} | {message}"
    file_path: Optional[str] = None
    rotation: str = "10 MB"
    retention: str = "7 days"
    component_levels: Dict[str, str] = Field(default_factory=dict)  # class name -> minimum level

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        return _check_level(v)

    @field_validator('component_levels')
    @classmethod
    def validate_component_levels(cls, v):
        return {component: _check_level(level) for component, level in v.items()}


class AppConfig(BaseModel):
    """Main application configuration"""
    app_name: str = "Table Source"
    version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _split_levels(value: str) -> Dict[str, str]:
    """Parse 'SourceDatabase=WARNING,RowReader=INFO'"""
    levels = {}
    for item in _split_list(value):
        component, sep, level = item.partition("=")
        if not sep or not component.strip():
            raise ValueError(f"expected component=LEVEL, got '{item}'")
        levels[component.strip()] = level.strip().upper()
    return levels


class ConfigManager:
    """Configuration manager for loading settings from a file and environment variables"""

    # env var -> (section, key, converter)
    ENV_OVERRIDES = {
        'DB_TYPE': ('database', 'database_type', str.lower),
        'DB_HOST': ('database', 'host', str),
        'DB_PORT': ('database', 'port', int),
        'DB_NAME': ('database', 'database', str),
        'DB_USER': ('database', 'user', str),
        'DB_PASSWORD': ('database', 'password', str),
        'DB_URL': ('database', 'url', str),
        'EXTRACT_TABLES': ('extraction', 'tables', _split_list),
        'EXTRACT_SCHEMA': ('extraction', 'schema_name', str),
        'EXTRACT_INCLUDE': ('extraction', 'include_patterns', _split_list),
        'EXTRACT_EXCLUDE': ('extraction', 'exclude_patterns', _split_list),
        'EXTRACT_SPLIT_SIZE': ('extraction', 'split_size', int),
        'LOG_LEVEL': ('logging', 'level', str.upper),
        'LOG_COMPONENT_LEVELS': ('logging', 'component_levels', _split_levels),
    }

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        self.config_file = Path(config_file) if config_file else None
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load configuration from file and environment variables"""
        if self._config is None:
            data = self._read_file() if self.config_file else {}
            self._apply_env_overrides(data)
            try:
                self._config = AppConfig(**data)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid configuration: {e}", details=e.errors())
        return self._config

    def _read_file(self) -> Dict[str, Any]:
        """Read a YAML or JSON configuration file"""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read config file {self.config_file}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {self.config_file} must contain a mapping")
        return data

    def _apply_env_overrides(self, data: Dict[str, Any]) -> None:
        """Override configuration values from environment variables"""
        for env_name, (section, key, convert) in self.ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if not raw:
                continue
            try:
                value = convert(raw)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {env_name}: {e}")
            data.setdefault(section, {})[key] = value

        if os.getenv('EXTRACT_TABLES'):
            data['extraction'].setdefault('mode', TableSelectionMode.EXPLICIT.value)
        if os.getenv('DEBUG'):
            data['debug'] = os.getenv('DEBUG', 'false').lower() == 'true'

    def get_config(self) -> AppConfig:
        """Get current configuration"""
        return self.load_config()

    def reload_config(self) -> AppConfig:
        """Reload configuration from file and environment variables"""
        self._config = None
        return self.load_config()


# Global configuration instance
config_manager = ConfigManager()


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    return config_manager.get_config()


def reload_config() -> AppConfig:
    """Reload the global configuration"""
    return config_manager.reload_config()

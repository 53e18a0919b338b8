"""
Table resolution: which tables a run extracts.
"""

import fnmatch
import re
from typing import List, Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from tablesource.core.config import ExtractionConfig, PatternSyntax, TableSelectionMode
from tablesource.core.logging import LoggerMixin
from tablesource.database.connection import SourceDatabase
from .exceptions import MetadataError, NoMatchingTablesError, TableNotFoundError
from .models import TableIdentifier


class TableResolver(LoggerMixin):
    """
    Resolves the configured table selection against database metadata.

    Explicit mode keeps the configured order. Pattern mode returns matches in
    sorted name order, so the result is stable for a fixed database state.
    """

    def __init__(self, database: SourceDatabase):
        self.database = database

    def resolve(self, connection: Connection, config: ExtractionConfig) -> List[TableIdentifier]:
        """
        Resolve the tables to extract.

        Args:
            connection: Open connection to the source
            config: Extraction configuration

        Returns:
            Ordered, duplicate-free list of table identifiers

        Raises:
            TableNotFoundError: An explicitly named table does not exist
            NoMatchingTablesError: Pattern mode matched nothing
            MetadataError: The driver rejected the metadata query
        """
        schema = self._normalize(config.schema_name)
        try:
            if config.mode == TableSelectionMode.EXPLICIT:
                tables = self._resolve_explicit(connection, config, schema)
            else:
                tables = self._resolve_pattern(connection, config, schema)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to list tables: {e}")
            raise MetadataError(f"Table discovery failed: {e}")

        self.logger.info(f"Resolved {len(tables)} tables in {config.mode.value} mode")
        return tables

    def _normalize(self, name: Optional[str]) -> Optional[str]:
        if name is None:
            return None
        return self.database.driver.normalize_identifier(name)

    def _identifier(self, name: str, schema: Optional[str]) -> TableIdentifier:
        return TableIdentifier(name=name, schema=schema, catalog=self.database.catalog)

    def _resolve_explicit(self, connection: Connection, config: ExtractionConfig,
                          schema: Optional[str]) -> List[TableIdentifier]:
        inspector = inspect(connection)
        tables: List[TableIdentifier] = []
        for configured in config.tables:
            table_schema = schema
            name = configured.strip()
            if table_schema is None and "." in name:
                table_schema, name = name.split(".", 1)
                table_schema = self._normalize(table_schema)
            name = self._normalize(name)

            # has_table also reports views
            if not inspector.has_table(name, schema=table_schema):
                raise TableNotFoundError(
                    f"Table {configured} does not exist",
                    details={"table": configured, "schema": table_schema}
                )
            if not config.include_views and name in inspector.get_view_names(schema=table_schema):
                raise TableNotFoundError(
                    f"{configured} is a view and views are not included",
                    details={"table": configured, "schema": table_schema, "include_views": False}
                )

            identifier = self._identifier(name, table_schema)
            if identifier in tables:
                self.logger.warning(f"Table {configured} listed more than once, extracting it once")
                continue
            tables.append(identifier)
        return tables

    def _resolve_pattern(self, connection: Connection, config: ExtractionConfig,
                         schema: Optional[str]) -> List[TableIdentifier]:
        names = self.database.list_tables(connection, schema=schema, include_views=config.include_views)

        include = config.include_patterns
        exclude = config.exclude_patterns
        selected = [
            name for name in names
            if (not include or self._matches_any(name, include, config.pattern_syntax))
            and not self._matches_any(name, exclude, config.pattern_syntax)
        ]

        if not selected:
            raise NoMatchingTablesError(
                f"No tables in schema {schema or 'default'} match the configured patterns",
                details={"include": include, "exclude": exclude, "available": len(names)}
            )
        return [self._identifier(name, schema) for name in selected]

    @staticmethod
    def _matches_any(name: str, patterns: List[str], syntax: PatternSyntax) -> bool:
        if syntax == PatternSyntax.REGEX:
            return any(re.fullmatch(pattern, name) for pattern in patterns)
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)

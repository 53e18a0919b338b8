"""
Schema probing: table column structure from database metadata.
"""

from typing import Any, Dict, List

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import CompileError, SQLAlchemyError

from tablesource.core.logging import LoggerMixin
from .exceptions import MetadataError
from .models import FieldDescriptor, TableIdentifier, TableSchema
from .types import SemanticType, lookup_semantic_type


class SchemaProber(LoggerMixin):
    """Builds a TableSchema by introspecting the driver's metadata."""

    def probe(self, connection: Connection, table: TableIdentifier) -> TableSchema:
        """
        Introspect a table and return its ordered field list.

        Args:
            connection: Open connection to the source
            table: Table to probe

        Returns:
            TableSchema with one FieldDescriptor per column

        Raises:
            MetadataError: If the table does not exist, the driver rejects the
                introspection call, or a column type has no semantic mapping
        """
        try:
            inspector = inspect(connection)
            if not inspector.has_table(table.name, schema=table.schema):
                raise MetadataError(f"Table {table.qualified_name} does not exist")
            columns = inspector.get_columns(table.name, schema=table.schema)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to introspect table {table.qualified_name}: {e}")
            raise MetadataError(f"Table introspection failed for {table.qualified_name}: {e}")

        if not columns:
            raise MetadataError(f"Table {table.qualified_name} has no columns")

        fields = tuple(self._build_field(connection, table, column) for column in columns)
        self.logger.debug(f"Probed table {table.qualified_name} with {len(fields)} fields")
        return TableSchema(table=table, fields=fields)

    def _build_field(self, connection: Connection, table: TableIdentifier,
                     column: Dict[str, Any]) -> FieldDescriptor:
        """Build a FieldDescriptor from SQLAlchemy column data."""
        sa_type = column['type']
        native_name = self._native_type_name(connection, table, column['name'], sa_type)
        semantic = lookup_semantic_type(native_name)
        if semantic is None:
            raise MetadataError(
                f"Column {table.qualified_name}.{column['name']} has unsupported type {native_name}",
                details={"table": table.qualified_name, "column": column['name'], "type": native_name}
            )

        length = getattr(sa_type, 'length', None) if semantic in (SemanticType.STRING, SemanticType.BINARY) else None
        precision = getattr(sa_type, 'precision', None) if semantic == SemanticType.DECIMAL else None
        scale = getattr(sa_type, 'scale', None) if semantic == SemanticType.DECIMAL else None

        return FieldDescriptor(
            name=column['name'],
            type=semantic,
            nullable=bool(column.get('nullable', True)),
            length=length if isinstance(length, int) else None,
            precision=precision if isinstance(precision, int) else None,
            scale=scale if isinstance(scale, int) else None,
        )

    def _native_type_name(self, connection: Connection, table: TableIdentifier,
                          column_name: str, sa_type: Any) -> str:
        """Render the column type the way the connected dialect spells it."""
        try:
            return sa_type.compile(dialect=connection.dialect)
        except CompileError:
            raise MetadataError(
                f"Column {table.qualified_name}.{column_name} has an unrecognized type",
                details={"table": table.qualified_name, "column": column_name, "type": repr(sa_type)}
            )

    def probe_all(self, connection: Connection, tables: List[TableIdentifier]) -> List[TableSchema]:
        """Probe every table, in order."""
        return [self.probe(connection, table) for table in tables]

"""
Row reading: streaming one split's rows as generic records.
"""

import time
from typing import Any, Iterator, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from tablesource.core.exceptions import DatabaseError
from tablesource.core.logging import LoggerMixin
from tablesource.database.connection import SourceDatabase
from .conversion import coerce_value
from .exceptions import ExtractionError, ExtractionQueryError
from .models import GenericRecord, SplitDescriptor, TableSchema
from .sql import split_condition, table_clause


class RowReader(LoggerMixin):
    """
    Reads the rows of one split.

    A reader is single-pass: ``read()`` may be called once, and the returned
    iterator owns its own connection and cursor until it is exhausted or
    closed. Re-reading a split needs a new reader for the same descriptor.
    Rows are ordered by the split's bound column.
    """

    def __init__(self, database: SourceDatabase, split: SplitDescriptor,
                 schema: TableSchema, fetch_size: int = 1000):
        if split.table != schema.table:
            raise ExtractionError(
                f"Split of {split.table.qualified_name} cannot be read with schema of "
                f"{schema.table.qualified_name}"
            )
        self.database = database
        self.split = split
        self.schema = schema
        self.fetch_size = fetch_size
        self.rows_read = 0
        self._consumed = False

    def build_query(self):
        """SELECT of the schema's fields restricted to the split's range."""
        clause = table_clause(self.split.table, self.schema.field_names)
        query = select(*[clause.c[name] for name in self.schema.field_names]).select_from(clause)

        condition = split_condition(self.split, clause)
        if condition is not None:
            query = query.where(condition)
        if self.split.bound_column is not None:
            query = query.order_by(clause.c[self.split.bound_column])
        return query

    def read(self) -> Iterator[GenericRecord]:
        """
        Start reading the split.

        Returns:
            Lazy, finite iterator of records

        Raises:
            ExtractionError: If this reader was already read
        """
        if self._consumed:
            raise ExtractionError(
                f"Reader for split {self.split.index} of {self.split.table.qualified_name} was already consumed"
            )
        self._consumed = True
        return self._records()

    def __iter__(self) -> Iterator[GenericRecord]:
        return self.read()

    def _records(self) -> Iterator[GenericRecord]:
        table = self.split.table
        start_time = time.time()
        self.logger.debug(f"Reading split {self.split.index} of {table.qualified_name}: {self.split.describe()}")

        try:
            with self.database.connect() as conn:
                if conn.dialect.supports_server_side_cursors:
                    conn = conn.execution_options(stream_results=True)
                result = conn.execute(self.build_query())
                try:
                    for partition in result.partitions(self.fetch_size):
                        for row in partition:
                            yield self._convert(row)
                finally:
                    result.close()
        except (SQLAlchemyError, DatabaseError) as e:
            self.logger.error(f"Failed reading split {self.split.index} of {table.qualified_name}: {e}")
            raise ExtractionQueryError(
                f"Failed reading split {self.split.index} of {table.qualified_name}: {e}",
                details={"rows_read": self.rows_read}
            )

        self.logger.info(
            f"Read {self.rows_read} rows from split {self.split.index} of {table.qualified_name} "
            f"in {time.time() - start_time:.2f}s"
        )

    def _convert(self, row: Sequence[Any]) -> GenericRecord:
        """Convert one driver row to a record in schema field order."""
        table_name = self.split.table.name
        values = tuple(
            coerce_value(value, descriptor, table_name)
            for value, descriptor in zip(row, self.schema.fields)
        )
        self.rows_read += 1
        return GenericRecord(table=self.split.table, schema=self.schema, values=values)


def read_split(database: SourceDatabase, split: SplitDescriptor, schema: TableSchema,
               fetch_size: int = 1000) -> Iterator[GenericRecord]:
    """Read one split with a fresh reader."""
    return RowReader(database, split, schema, fetch_size).read()

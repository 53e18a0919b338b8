"""
Split planning: partitioning a table's rows into independently readable ranges.
"""

import math
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from sqlalchemy import distinct, func, inspect, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from tablesource.core.logging import LoggerMixin
from .conversion import coerce_value
from .exceptions import ExtractionConfigurationError, ExtractionQueryError, MetadataError
from .models import FieldDescriptor, SplitDescriptor, TableIdentifier, TableSchema
from .prober import SchemaProber
from .sql import table_clause
from .types import RANGE_TYPES, SemanticType


DEFAULT_ROWS_PER_SPLIT = 1_000_000


@dataclass
class BoundStatistics:
    """Range and cardinality of a bound column."""
    minimum: Any = None
    maximum: Any = None
    row_count: int = 0
    distinct_count: Optional[int] = None


def compute_boundaries(minimum: Any, maximum: Any, split_count: int,
                       semantic: SemanticType) -> List[Any]:
    """
    Interior cut points dividing ``[minimum, maximum]`` into ``split_count`` ranges.

    Cut points are strictly increasing and lie in ``(minimum, maximum]``;
    candidates that collapse onto each other are dropped, so a narrow range
    yields fewer cut points than requested.
    """
    if split_count <= 1 or minimum is None or maximum is None or not minimum < maximum:
        return []

    span = maximum - minimum
    boundaries: List[Any] = []
    for i in range(1, split_count):
        if semantic in (SemanticType.FLOAT, SemanticType.DECIMAL):
            candidate = minimum + span * i / split_count
        else:
            # integers, dates and timestamps (timedelta span); ceiling division
            candidate = minimum - ((-span * i) // split_count)
        if candidate <= minimum or candidate > maximum:
            continue
        if boundaries and candidate <= boundaries[-1]:
            continue
        boundaries.append(candidate)
    return boundaries


class SplitPlanner(LoggerMixin):
    """
    Plans disjoint, exhaustive splits for a table.

    A table with a usable bound column (configured override, else a
    single-column numeric or temporal primary key) is cut into contiguous
    closed-open ranges of roughly ``rows_per_split`` rows each. The first
    range is open below and also takes NULL bound values, the last is open
    above. Tables without a bound column get one whole-table split.
    """

    def __init__(self, prober: Optional[SchemaProber] = None):
        self.prober = prober or SchemaProber()

    def plan(self, connection: Connection, table: TableIdentifier,
             hint: Optional[int] = None, schema: Optional[TableSchema] = None,
             split_column: Optional[str] = None) -> List[SplitDescriptor]:
        """
        Plan the splits of one table.

        Args:
            connection: Open connection to the source
            table: Table to plan
            hint: Target rows per split, DEFAULT_ROWS_PER_SPLIT when None
            schema: Probed schema of the table, probed here when None
            split_column: Bound column override

        Returns:
            Ordered list of at least one split

        Raises:
            ExtractionConfigurationError: Override names a column not in the table
            MetadataError: Primary key introspection failed
            ExtractionQueryError: The bound statistics query failed
        """
        if hint is not None and hint <= 0:
            raise ExtractionConfigurationError(f"Split size hint must be positive, got {hint}")

        schema = schema or self.prober.probe(connection, table)
        bound, unique = self._choose_bound_column(connection, table, schema, split_column)

        if bound is None:
            self.logger.info(f"Table {table.qualified_name} has no usable bound column, using a single split")
            return [SplitDescriptor(table=table)]

        if bound.type not in RANGE_TYPES:
            self.logger.warning(
                f"Bound column {bound.name} of {table.qualified_name} is {bound.type.value}, "
                f"which cannot be range-partitioned; using a single split"
            )
            return [SplitDescriptor(table=table, bound_column=bound.name)]

        stats = self._bound_statistics(connection, table, bound, unique)
        if stats.row_count == 0 or stats.minimum is None:
            self.logger.info(f"Table {table.qualified_name} has no bounded rows, using a single split")
            return [SplitDescriptor(table=table, bound_column=bound.name)]

        rows_per_split = hint or DEFAULT_ROWS_PER_SPLIT
        requested = max(1, math.ceil(stats.row_count / rows_per_split))
        if stats.distinct_count is not None and 1 < stats.distinct_count <= requested:
            # one split per distinct value, so clustered values never leave a range empty
            boundaries = self._distinct_values(connection, table, bound)[1:]
        else:
            if stats.distinct_count is not None:
                requested = min(requested, max(1, stats.distinct_count))
            boundaries = compute_boundaries(stats.minimum, stats.maximum, requested, bound.type)
        edges = [None] + boundaries + [None]
        splits = [
            SplitDescriptor(
                table=table,
                index=i,
                bound_column=bound.name,
                lower=edges[i],
                upper=edges[i + 1],
                include_nulls=(i == 0),
            )
            for i in range(len(edges) - 1)
        ]

        self.logger.info(
            f"Planned {len(splits)} splits for {table.qualified_name} on {bound.name} "
            f"({stats.row_count} rows, {rows_per_split} rows per split)"
        )
        return splits

    def _choose_bound_column(self, connection: Connection, table: TableIdentifier,
                             schema: TableSchema,
                             split_column: Optional[str]) -> Tuple[Optional[FieldDescriptor], bool]:
        """Return the bound column and whether its values are unique."""
        primary_key = self._primary_key(connection, table)
        unique_column = primary_key[0] if len(primary_key) == 1 else None

        if split_column:
            bound = schema.get_field(split_column)
            if bound is None:
                raise ExtractionConfigurationError(
                    f"Split column {split_column} is not a column of {table.qualified_name}",
                    details={"table": table.qualified_name, "columns": schema.field_names}
                )
            return bound, split_column == unique_column

        if unique_column is None:
            return None, False
        bound = schema.get_field(unique_column)
        if bound is None or bound.type not in RANGE_TYPES:
            return None, False
        return bound, True

    def _primary_key(self, connection: Connection, table: TableIdentifier) -> List[str]:
        try:
            constraint = inspect(connection).get_pk_constraint(table.name, schema=table.schema)
        except SQLAlchemyError as e:
            raise MetadataError(f"Primary key introspection failed for {table.qualified_name}: {e}")
        return list(constraint.get('constrained_columns') or [])

    def _bound_statistics(self, connection: Connection, table: TableIdentifier,
                          bound: FieldDescriptor, unique: bool) -> BoundStatistics:
        """Query min, max and row count (and distinct count for non-unique columns)."""
        clause = table_clause(table, [bound.name])
        column = clause.c[bound.name]
        aggregates = [func.min(column), func.max(column), func.count()]
        if not unique:
            aggregates.append(func.count(distinct(column)))

        try:
            row = connection.execute(select(*aggregates).select_from(clause)).one()
        except SQLAlchemyError as e:
            self.logger.error(f"Bound query failed for {table.qualified_name}: {e}")
            raise ExtractionQueryError(f"Failed to query split bounds of {table.qualified_name}: {e}")

        # SQLite hands temporal aggregates back as text
        nullable = FieldDescriptor(name=bound.name, type=bound.type, nullable=True)
        return BoundStatistics(
            minimum=coerce_value(row[0], nullable, table.name),
            maximum=coerce_value(row[1], nullable, table.name),
            row_count=int(row[2] or 0),
            distinct_count=int(row[3] or 0) if not unique else None,
        )

    def _distinct_values(self, connection: Connection, table: TableIdentifier,
                         bound: FieldDescriptor) -> List[Any]:
        """Sorted non-NULL values of the bound column."""
        clause = table_clause(table, [bound.name])
        column = clause.c[bound.name]
        query = select(column).where(column.is_not(None)).distinct().order_by(column)

        try:
            rows = connection.execute(query).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Distinct value query failed for {table.qualified_name}: {e}")
            raise ExtractionQueryError(f"Failed to query split values of {table.qualified_name}: {e}")

        nullable = FieldDescriptor(name=bound.name, type=bound.type, nullable=True)
        return [coerce_value(row[0], nullable, table.name) for row in rows]

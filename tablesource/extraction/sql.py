"""
SQLAlchemy Core statement helpers shared by planning and reading.
"""

from typing import Iterable, Optional

from sqlalchemy import and_, column, or_, table as table_construct
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.selectable import TableClause

from .models import SplitDescriptor, TableIdentifier


def table_clause(table: TableIdentifier, column_names: Iterable[str]) -> TableClause:
    """Lightweight table construct; identifiers are quoted by the dialect."""
    return table_construct(table.name, *[column(name) for name in column_names], schema=table.schema)


def split_condition(split: SplitDescriptor, clause: TableClause) -> Optional[ColumnElement]:
    """
    WHERE condition selecting exactly the rows of a split.

    Returns None for a split covering the whole table.
    """
    if split.bound_column is None or split.is_whole_table:
        return None

    bound = clause.c[split.bound_column]
    conditions = []
    if split.lower is not None:
        conditions.append(bound >= split.lower)
    if split.upper is not None:
        conditions.append(bound < split.upper)

    condition = and_(*conditions) if conditions else None
    if split.include_nulls:
        return or_(condition, bound.is_(None)) if condition is not None else bound.is_(None)
    if condition is None:
        return bound.is_not(None)
    return condition

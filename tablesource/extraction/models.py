"""
Data model for multi-table extraction: table identity, schemas, splits and records.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .types import SemanticType


@dataclass(frozen=True)
class TableIdentifier:
    """Unique key of a physical table."""
    name: str
    schema: Optional[str] = None
    catalog: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        """Schema-qualified name for display."""
        return f"{self.schema}.{self.name}" if self.schema else self.name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {"catalog": self.catalog, "schema": self.schema, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableIdentifier":
        return cls(name=data["name"], schema=data.get("schema"), catalog=data.get("catalog"))

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class FieldDescriptor:
    """One column of a table schema."""
    name: str
    type: SemanticType
    nullable: bool = True
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "name": self.name,
            "type": self.type.value,
            "nullable": self.nullable,
            "length": self.length,
            "precision": self.precision,
            "scale": self.scale,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDescriptor":
        return cls(
            name=data["name"],
            type=SemanticType(data["type"]),
            nullable=data.get("nullable", True),
            length=data.get("length"),
            precision=data.get("precision"),
            scale=data.get("scale"),
        )


@dataclass(frozen=True)
class TableSchema:
    """Ordered field list of one table."""
    table: TableIdentifier
    fields: Tuple[FieldDescriptor, ...] = ()

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        """Find a field by name, None when absent."""
        return next((f for f in self.fields if f.name == name), None)

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self.fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "table": self.table.to_dict(),
            "fields": [f.to_dict() for f in self.fields],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableSchema":
        return cls(
            table=TableIdentifier.from_dict(data["table"]),
            fields=tuple(FieldDescriptor.from_dict(f) for f in data["fields"]),
        )

    def to_json(self) -> str:
        """Stable text encoding used for the argument store."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_json(cls, payload: str) -> "TableSchema":
        return cls.from_dict(json.loads(payload))


@dataclass(frozen=True)
class SplitDescriptor:
    """
    A boundable sub-range of one table's rows.

    The split covers ``lower <= bound_column < upper``. A ``None`` bound is
    open on that side; ``include_nulls`` adds rows whose bound value is NULL.
    A split without a bound column covers the whole table.
    """
    table: TableIdentifier
    index: int = 0
    bound_column: Optional[str] = None
    lower: Any = None
    upper: Any = None
    include_nulls: bool = True

    @property
    def is_whole_table(self) -> bool:
        return self.lower is None and self.upper is None and self.include_nulls

    def describe(self) -> str:
        """Human readable range, e.g. ``id in [1, 5)``."""
        if self.bound_column is None or self.is_whole_table:
            return "whole table"
        lower = "-inf" if self.lower is None else str(self.lower)
        upper = "+inf" if self.upper is None else str(self.upper)
        text = f"{self.bound_column} in [{lower}, {upper})"
        if self.include_nulls:
            text += " or null"
        return text


@dataclass(frozen=True)
class PlannedSplit:
    """A split handed to parallel execution together with its table schema."""
    split: SplitDescriptor
    schema: TableSchema

    @property
    def table(self) -> TableIdentifier:
        return self.split.table


@dataclass(frozen=True)
class GenericRecord:
    """One row of a source table, in schema field order."""
    table: TableIdentifier
    schema: TableSchema = field(repr=False)
    values: Tuple[Any, ...] = ()

    def __getitem__(self, name: str) -> Any:
        try:
            return self.values[self.schema.field_names.index(name)]
        except ValueError:
            raise KeyError(name)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def as_dict(self) -> Dict[str, Any]:
        """Field values keyed by field name."""
        return dict(zip(self.schema.field_names, self.values))

    def to_dict(self, table_name_field: Optional[str] = "tablename") -> Dict[str, Any]:
        """Field values plus the source table name under ``table_name_field``."""
        data = self.as_dict()
        if table_name_field:
            data[table_name_field] = self.table.name
        return data

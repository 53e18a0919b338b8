"""
Unit tests for semantic type mapping and value coercion.
"""
import pytest
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from uuid import UUID

from tablesource.extraction.conversion import coerce_value
from tablesource.extraction.exceptions import RowConversionError
from tablesource.extraction.models import FieldDescriptor
from tablesource.extraction.types import SemanticType, lookup_semantic_type, normalize_type_name


@pytest.mark.unit
@pytest.mark.parametrize("native,expected", [
    ("NUMERIC(10, 2)", "NUMERIC"),
    ("int(11) unsigned", "INT"),
    ("VARCHAR(50) COLLATE \"utf8mb4_bin\"", "VARCHAR"),
    ("TIMESTAMP(6) WITH TIME ZONE", "TIMESTAMP WITH TIME ZONE"),
    ("double precision", "DOUBLE PRECISION"),
])
def test_normalize_type_name(native, expected):
    """Test native type name normalization."""
    assert normalize_type_name(native) == expected


@pytest.mark.unit
@pytest.mark.parametrize("native,expected", [
    ("INTEGER", SemanticType.INTEGER),
    ("BIGINT UNSIGNED", SemanticType.INTEGER),
    ("NUMBER(12, 0)", SemanticType.DECIMAL),
    ("VARCHAR2(30)", SemanticType.STRING),
    ("UUID", SemanticType.STRING),
    ("BIT", SemanticType.BOOLEAN),
    ("DATETIME2", SemanticType.TIMESTAMP),
    ("TIME", SemanticType.TIME),
    ("BYTEA", SemanticType.BINARY),
    ("REAL", SemanticType.FLOAT),
])
def test_lookup_semantic_type(native, expected):
    """Test native type lookup."""
    assert lookup_semantic_type(native) == expected


@pytest.mark.unit
def test_unmapped_types():
    """Test that unknown types have no semantic mapping."""
    assert lookup_semantic_type("JSON") is None
    assert lookup_semantic_type("GEOMETRY") is None


def field(semantic, nullable=True):
    return FieldDescriptor(name="col", type=semantic, nullable=nullable)


@pytest.mark.unit
class TestCoerceValue:
    """Test coerce_value."""

    def test_null_in_nullable_field(self):
        """Test that NULL passes through nullable fields."""
        assert coerce_value(None, field(SemanticType.INTEGER)) is None

    def test_null_in_non_nullable_field(self):
        """Test that NULL in a non-nullable field is rejected."""
        with pytest.raises(RowConversionError) as exc_info:
            coerce_value(None, field(SemanticType.INTEGER, nullable=False), "orders")
        assert "orders.col" in str(exc_info.value)

    @pytest.mark.parametrize("semantic,value,expected", [
        (SemanticType.INTEGER, Decimal("7"), 7),
        (SemanticType.INTEGER, "42", 42),
        (SemanticType.FLOAT, Decimal("1.5"), 1.5),
        (SemanticType.DECIMAL, 19.99, Decimal("19.99")),
        (SemanticType.STRING, UUID(int=1), "00000000-0000-0000-0000-000000000001"),
        (SemanticType.BOOLEAN, 1, True),
        (SemanticType.BOOLEAN, b"\x00", False),
        (SemanticType.DATE, "2024-01-05", date(2024, 1, 5)),
        (SemanticType.DATE, datetime(2024, 1, 5, 10, 0), date(2024, 1, 5)),
        (SemanticType.TIME, timedelta(hours=9, minutes=30), time(9, 30)),
        (SemanticType.TIMESTAMP, "2024-01-05 10:00:00", datetime(2024, 1, 5, 10, 0)),
        (SemanticType.TIMESTAMP, date(2024, 1, 5), datetime(2024, 1, 5)),
        (SemanticType.BINARY, memoryview(b"ab"), b"ab"),
    ])
    def test_accepted_values(self, semantic, value, expected):
        """Test conversions of driver-specific representations."""
        assert coerce_value(value, field(semantic)) == expected

    @pytest.mark.parametrize("semantic,value", [
        (SemanticType.INTEGER, "abc"),
        (SemanticType.INTEGER, 1.5),
        (SemanticType.DECIMAL, "not a number"),
        (SemanticType.BOOLEAN, 2),
        (SemanticType.DATE, "yesterday"),
        (SemanticType.TIME, timedelta(days=2)),
        (SemanticType.BINARY, "text"),
        (SemanticType.STRING, b"bytes"),
    ])
    def test_rejected_values(self, semantic, value):
        """Test that values outside the declared type are rejected."""
        with pytest.raises(RowConversionError) as exc_info:
            coerce_value(value, field(semantic), "orders")
        assert exc_info.value.details["field"] == "col"

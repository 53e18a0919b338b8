"""
Unit tests for extraction data models.
"""
import json
import pytest

from tablesource.extraction.models import (
    FieldDescriptor,
    GenericRecord,
    PlannedSplit,
    SplitDescriptor,
    TableIdentifier,
    TableSchema,
)
from tablesource.extraction.types import SemanticType


@pytest.fixture
def orders_schema():
    table = TableIdentifier(name="orders", schema="sales", catalog="shop")
    return TableSchema(table=table, fields=(
        FieldDescriptor(name="id", type=SemanticType.INTEGER, nullable=False),
        FieldDescriptor(name="amount", type=SemanticType.DECIMAL, precision=10, scale=2),
        FieldDescriptor(name="note", type=SemanticType.STRING, length=200),
    ))


@pytest.mark.unit
class TestTableIdentifier:
    """Test TableIdentifier."""

    def test_qualified_name(self):
        """Test schema-qualified display name."""
        assert TableIdentifier(name="orders", schema="sales").qualified_name == "sales.orders"
        assert TableIdentifier(name="orders").qualified_name == "orders"
        assert str(TableIdentifier(name="orders", schema="sales")) == "sales.orders"

    def test_identity_includes_catalog_and_schema(self):
        """Test that equality and hashing cover all three parts."""
        a = TableIdentifier(name="orders", schema="sales", catalog="shop")
        b = TableIdentifier(name="orders", schema="sales", catalog="shop")
        c = TableIdentifier(name="orders", schema="archive", catalog="shop")

        assert a == b
        assert hash(a) == hash(b)
        assert a != c
        assert len({a, b, c}) == 2


@pytest.mark.unit
class TestTableSchema:
    """Test TableSchema."""

    def test_field_access(self, orders_schema):
        """Test field lookup helpers."""
        assert orders_schema.field_names == ["id", "amount", "note"]
        assert len(orders_schema) == 3
        assert orders_schema.get_field("amount").precision == 10
        assert orders_schema.get_field("missing") is None

    def test_json_encoding_is_stable(self, orders_schema):
        """Test that the JSON encoding is compact with sorted keys."""
        payload = orders_schema.to_json()

        assert payload == json.dumps(json.loads(payload), sort_keys=True, separators=(",", ":"))
        data = json.loads(payload)
        assert data["table"] == {"catalog": "shop", "schema": "sales", "name": "orders"}
        assert data["fields"][1] == {
            "name": "amount", "type": "decimal", "nullable": True,
            "length": None, "precision": 10, "scale": 2,
        }

    def test_json_decoding_restores_schema(self, orders_schema):
        """Test that a published schema reads back equal."""
        assert TableSchema.from_json(orders_schema.to_json()) == orders_schema


@pytest.mark.unit
class TestSplitDescriptor:
    """Test SplitDescriptor."""

    def test_whole_table_split(self):
        """Test a split without bounds."""
        split = SplitDescriptor(table=TableIdentifier(name="events"))
        assert split.is_whole_table
        assert split.describe() == "whole table"

    def test_describe_ranges(self):
        """Test human readable split ranges."""
        table = TableIdentifier(name="orders")
        first = SplitDescriptor(table=table, index=0, bound_column="id", upper=2)
        last = SplitDescriptor(table=table, index=1, bound_column="id", lower=2, include_nulls=False)

        assert not first.is_whole_table
        assert first.describe() == "id in [-inf, 2) or null"
        assert last.describe() == "id in [2, +inf)"

    def test_planned_split_exposes_table(self, orders_schema):
        """Test PlannedSplit table shortcut."""
        split = SplitDescriptor(table=orders_schema.table)
        assert PlannedSplit(split=split, schema=orders_schema).table == orders_schema.table


@pytest.mark.unit
class TestGenericRecord:
    """Test GenericRecord."""

    def test_field_access(self, orders_schema):
        """Test lookup by field name."""
        record = GenericRecord(table=orders_schema.table, schema=orders_schema, values=(1, None, "x"))

        assert record["id"] == 1
        assert record.get("amount") is None
        assert record.get("missing", "default") == "default"
        with pytest.raises(KeyError):
            record["missing"]

    def test_to_dict_adds_table_name(self, orders_schema):
        """Test that records carry their source table name."""
        record = GenericRecord(table=orders_schema.table, schema=orders_schema, values=(1, None, "x"))

        assert record.as_dict() == {"id": 1, "amount": None, "note": "x"}
        assert record.to_dict() == {"id": 1, "amount": None, "note": "x", "tablename": "orders"}
        assert record.to_dict("source")["source"] == "orders"
        assert "tablename" not in record.to_dict(None)

"""
Coercion of driver values to the Python type of a semantic field type.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict
from uuid import UUID

from .exceptions import RowConversionError
from .models import FieldDescriptor
from .types import SemanticType


def _to_integer(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError


def _to_float(value: Any) -> float:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        return float(value)
    raise TypeError


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        return Decimal(str(value).strip())
    raise TypeError


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal, UUID)) and not isinstance(value, bool):
        return str(value)
    raise TypeError


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, (bytes, bytearray)) and len(value) == 1 and value[0] in (0, 1):
        return bool(value[0])
    raise TypeError


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError


def _to_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        # MySQL returns TIME columns as a duration since midnight
        if not timedelta(0) <= value < timedelta(days=1):
            raise ValueError
        return (datetime.min + value).time()
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise TypeError


def _to_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise TypeError


def _to_binary(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise TypeError


CONVERTERS: Dict[SemanticType, Callable[[Any], Any]] = {
    SemanticType.INTEGER: _to_integer,
    SemanticType.FLOAT: _to_float,
    SemanticType.DECIMAL: _to_decimal,
    SemanticType.STRING: _to_string,
    SemanticType.BOOLEAN: _to_boolean,
    SemanticType.DATE: _to_date,
    SemanticType.TIME: _to_time,
    SemanticType.TIMESTAMP: _to_timestamp,
    SemanticType.BINARY: _to_binary,
}


def coerce_value(value: Any, descriptor: FieldDescriptor, table_name: str = "") -> Any:
    """
    Convert a driver value to the Python type of the field's semantic type.

    Args:
        value: Raw value returned by the driver
        descriptor: Field the value belongs to
        table_name: Table name used in error messages

    Returns:
        Converted value, or None for a NULL in a nullable field

    Raises:
        RowConversionError: If the value is NULL for a non-nullable field or
            cannot be represented as the declared type
    """
    location = f"{table_name}.{descriptor.name}" if table_name else descriptor.name

    if value is None:
        if not descriptor.nullable:
            raise RowConversionError(f"NULL value in non-nullable field {location}")
        return None

    try:
        return CONVERTERS[descriptor.type](value)
    except (TypeError, ValueError, InvalidOperation):
        raise RowConversionError(
            f"Cannot convert {type(value).__name__} value to {descriptor.type.value} for field {location}",
            details={"table": table_name, "field": descriptor.name, "value": repr(value)[:100]}
        )

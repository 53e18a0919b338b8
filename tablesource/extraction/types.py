"""
Semantic field types and the native type mapping table.
"""

import re
from enum import Enum
from typing import Dict, Optional


class SemanticType(Enum):
    """Closed set of normalized field types."""
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    STRING = "string"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    BINARY = "binary"


# Types whose values can be interpolated to cut a table into ranges
RANGE_TYPES = frozenset({
    SemanticType.INTEGER,
    SemanticType.FLOAT,
    SemanticType.DECIMAL,
    SemanticType.DATE,
    SemanticType.TIMESTAMP,
})


def _build_type_mapping() -> Dict[str, SemanticType]:
    """Build mapping of normalized native type names to semantic types."""
    groups = {
        SemanticType.INTEGER: (
            'INTEGER', 'INT', 'BIGINT', 'SMALLINT', 'TINYINT', 'MEDIUMINT',
            'INT2', 'INT4', 'INT8', 'SERIAL', 'BIGSERIAL', 'SMALLSERIAL',
        ),
        SemanticType.FLOAT: (
            'FLOAT', 'REAL', 'DOUBLE', 'DOUBLE PRECISION', 'FLOAT4', 'FLOAT8',
            'BINARY_FLOAT', 'BINARY_DOUBLE',
        ),
        SemanticType.DECIMAL: (
            'DECIMAL', 'NUMERIC', 'NUMBER', 'DEC', 'MONEY', 'SMALLMONEY',
        ),
        SemanticType.STRING: (
            'VARCHAR', 'CHAR', 'NCHAR', 'NVARCHAR', 'VARCHAR2', 'NVARCHAR2',
            'CHARACTER', 'CHARACTER VARYING', 'TEXT', 'NTEXT', 'TINYTEXT',
            'MEDIUMTEXT', 'LONGTEXT', 'CLOB', 'NCLOB', 'STRING', 'UUID',
            'UNIQUEIDENTIFIER', 'ENUM', 'CITEXT',
        ),
        SemanticType.BOOLEAN: (
            'BOOLEAN', 'BOOL', 'BIT',
        ),
        SemanticType.DATE: (
            'DATE',
        ),
        SemanticType.TIME: (
            'TIME', 'TIME WITHOUT TIME ZONE', 'TIME WITH TIME ZONE',
        ),
        SemanticType.TIMESTAMP: (
            'DATETIME', 'DATETIME2', 'SMALLDATETIME', 'DATETIMEOFFSET',
            'TIMESTAMP', 'TIMESTAMP WITHOUT TIME ZONE', 'TIMESTAMP WITH TIME ZONE',
            'TIMESTAMP WITH LOCAL TIME ZONE',
        ),
        SemanticType.BINARY: (
            'BLOB', 'TINYBLOB', 'MEDIUMBLOB', 'LONGBLOB', 'BINARY', 'VARBINARY',
            'BYTEA', 'RAW', 'LONG RAW', 'IMAGE',
        ),
    }
    return {name: semantic for semantic, names in groups.items() for name in names}


TYPE_MAPPING: Dict[str, SemanticType] = _build_type_mapping()

_ARGUMENTS = re.compile(r"\([^)]*\)")
_SUFFIXES = re.compile(r"\s+(COLLATE|CHARACTER SET|CHARSET)\s+.*$")
_MODIFIERS = {'UNSIGNED', 'SIGNED', 'ZEROFILL'}


def normalize_type_name(native_name: str) -> str:
    """
    Reduce a driver's type spelling to the key used in TYPE_MAPPING.

    'NUMERIC(10, 2)' -> 'NUMERIC', 'int(11) unsigned' -> 'INT',
    'TIMESTAMP(6) WITH TIME ZONE' -> 'TIMESTAMP WITH TIME ZONE'.
    """
    name = native_name.upper()
    name = _SUFFIXES.sub("", name)
    name = _ARGUMENTS.sub(" ", name)
    tokens = [token for token in name.split() if token not in _MODIFIERS]
    return " ".join(tokens)


def lookup_semantic_type(native_name: str) -> Optional[SemanticType]:
    """Map a native type name to a semantic type, None when unmapped."""
    return TYPE_MAPPING.get(normalize_type_name(native_name))

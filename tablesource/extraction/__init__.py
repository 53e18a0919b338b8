"""
Multi-table extraction module.

This module reads many relational tables as one logical input:
- Table resolution by explicit list or name patterns
- Schema probing and publication to the argument store
- Split planning and parallel row reading
"""

from .exceptions import (
    DuplicatePublicationError,
    ExtractionConfigurationError,
    ExtractionError,
    ExtractionQueryError,
    MetadataError,
    NoMatchingTablesError,
    OrchestrationError,
    RowConversionError,
    TableNotFoundError,
)
from .models import FieldDescriptor, GenericRecord, PlannedSplit, SplitDescriptor, TableIdentifier, TableSchema
from .orchestrator import ExtractionOrchestrator, OrchestratorState
from .prober import SchemaProber
from .publisher import InMemoryArgumentStore, JsonFileArgumentStore, SchemaArgumentStore, SchemaPublisher
from .reader import RowReader, read_split
from .resolver import TableResolver
from .runner import LocalSplitRunner, SplitResult
from .splitter import DEFAULT_ROWS_PER_SPLIT, SplitPlanner
from .types import SemanticType

__all__ = [
    "ExtractionOrchestrator",
    "OrchestratorState",
    "SchemaProber",
    "TableResolver",
    "SplitPlanner",
    "DEFAULT_ROWS_PER_SPLIT",
    "RowReader",
    "read_split",
    "SchemaPublisher",
    "SchemaArgumentStore",
    "InMemoryArgumentStore",
    "JsonFileArgumentStore",
    "LocalSplitRunner",
    "SplitResult",
    "TableIdentifier",
    "FieldDescriptor",
    "TableSchema",
    "SplitDescriptor",
    "PlannedSplit",
    "GenericRecord",
    "SemanticType",
    "ExtractionError",
    "MetadataError",
    "TableNotFoundError",
    "NoMatchingTablesError",
    "RowConversionError",
    "DuplicatePublicationError",
    "OrchestrationError",
    "ExtractionConfigurationError",
    "ExtractionQueryError",
]

"""
Custom exceptions for multi-table extraction.
"""

from tablesource.core.exceptions import BaseCustomException


class ExtractionError(BaseCustomException):
    """Base exception for data extraction errors."""
    pass


class MetadataError(ExtractionError):
    """Table introspection failed or a column type has no semantic mapping."""
    pass


class TableNotFoundError(ExtractionError):
    """An explicitly configured table does not exist."""
    pass


class NoMatchingTablesError(ExtractionError):
    """Pattern discovery matched no tables."""
    pass


class RowConversionError(ExtractionError):
    """A row value cannot be coerced to its declared semantic type."""
    pass


class DuplicatePublicationError(ExtractionError):
    """A table schema was published twice within one run."""
    pass


class OrchestrationError(ExtractionError):
    """The sequential planning phase failed; nothing may be read."""
    pass


class ExtractionConfigurationError(ExtractionError):
    """Exception raised when extraction configuration is invalid."""
    pass


class ExtractionQueryError(ExtractionError):
    """Exception raised when SQL query execution fails."""
    pass

"""
Custom exceptions for the table source.
"""

from typing import Optional, Any


class BaseCustomException(Exception):
    """Base custom exception class"""
    
    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class TableSourceException(BaseCustomException):
    """Base exception for infrastructure errors"""
    pass


class ConfigurationError(TableSourceException):
    """Configuration related errors"""
    pass


class DatabaseError(TableSourceException):
    """Database related errors"""
    pass

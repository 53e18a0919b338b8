"""
Database access layer: driver capabilities and source connections.
"""

from .connection import SourceDatabase
from .drivers import DatabaseDriver, DatabaseDriverFactory

__all__ = [
    "SourceDatabase",
    "DatabaseDriver",
    "DatabaseDriverFactory",
]

"""
Multi-table relational source.
Extracts rows from many database tables as uniform records and publishes
each table's schema for later pipeline stages.
"""

__version__ = "0.1.0"
__author__ = "Table Source Team"

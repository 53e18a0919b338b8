"""
Command line interface for the table source.
"""

"""Aggregate CUIT holder spreadsheets into settlement TXT files."""

__version__ = "0.1.0"

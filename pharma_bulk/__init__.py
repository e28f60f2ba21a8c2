"""Spreadsheet bulk importer for the pharmacy-network administrator API."""

__version__ = "0.1.0"

"""File ingest webapp."""

__version__ = "0.1.0"

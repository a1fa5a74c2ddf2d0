"""Dagster Ops - Reusable Computation Units."""

from .ingest_ops import IngestFileConfig, process_uploaded_file

__all__ = [
    "IngestFileConfig",
    "process_uploaded_file",
]

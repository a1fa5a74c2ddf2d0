"""Dagster Jobs - Executable Workflows."""

from .ingest_file_job import ingest_file_job

__all__ = ["ingest_file_job"]

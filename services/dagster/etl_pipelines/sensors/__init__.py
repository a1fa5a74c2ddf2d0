"""Dagster Sensors - Run Lifecycle Tracking."""

from .run_status_sensor import ingest_run_failure_sensor

__all__ = [
    "ingest_run_failure_sensor",
]

# =============================================================================
# Services Module
# =============================================================================
# Service wrappers for MongoDB job status and Dagster.
# =============================================================================

from app.services.dagster_service import DagsterService, get_dagster_service
from app.services.job_service import JobService, get_job_service

__all__ = [
    # Dagster
    "DagsterService",
    "get_dagster_service",
    # Job status
    "JobService",
    "get_job_service",
]

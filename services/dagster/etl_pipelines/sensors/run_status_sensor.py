# =============================================================================
# Run Status Sensor - Job status reconciliation for failed runs
# =============================================================================
# Marks the tracked ingest job failed when its Dagster run fails or is
# canceled outside the worker's own error handling (process crash, run
# timeout, cancellation), so jobs are not left in "processing".
# =============================================================================

"""Run failure sensor for ingest job status tracking."""

from typing import Optional

from dagster import (
    DagsterRunStatus,
    DefaultSensorStatus,
    RunFailureSensorContext,
    run_failure_sensor,
)

from libs.ingestion.errors import InvalidTransitionError, StatusStoreError
from libs.ingestion.reporter import JobStatusReporter


__all__ = ["ingest_run_failure_sensor"]


# Jobs we should track (these are the ones that report job status)
TRACKED_JOBS = frozenset(["ingest_file_job"])


def _get_job_id_from_run(run_tags: dict, run_config: Optional[dict] = None) -> Optional[str]:
    """Extract job_id from run tags, falling back to the op run config."""
    job_id = run_tags.get("job_id")
    if job_id:
        return job_id
    ops_config = (run_config or {}).get("ops", {})
    op_config = ops_config.get("process_uploaded_file", {}).get("config", {})
    return op_config.get("job_id")


def _get_reporter(log) -> JobStatusReporter:
    """Create a status reporter using settings from environment."""
    from pymongo import MongoClient

    from libs.ingestion.job_store import MongoJobStore
    from libs.models.config import IngestSettings, MongoSettings

    settings = MongoSettings()
    client = MongoClient(settings.connection_string)
    store = MongoJobStore(client[settings.database]["ingest_jobs"])
    return JobStatusReporter(store, ttl_seconds=IngestSettings().status_ttl_seconds, log=log)


def _mark_job_failed(reporter: JobStatusReporter, job_id: str, error_message: str, log) -> bool:
    """
    Core logic: mark ``job_id`` failed unless it already reached a terminal state.

    Returns:
        True when the job record was updated
    """
    try:
        try:
            record = reporter.get_status(job_id)
        except StatusStoreError as e:
            log.error(f"Cannot read status of job {job_id}: {e}")
            return False

        if record is None:
            log.warning(f"Job {job_id} has no status record (never started or expired)")
        elif record.is_terminal:
            log.info(f"Job {job_id} already {record.status.value}, leaving it unchanged")
            return False

        try:
            reporter.fail(job_id, error=error_message, message="Worker run did not finish")
        except InvalidTransitionError as e:
            log.info(f"Job {job_id} finished concurrently: {e}")
            return False
    finally:
        reporter.close()

    log.info(f"Marked job {job_id} failed")
    return True


@run_failure_sensor(
    name="ingest_run_failure_sensor",
    description="Marks ingest jobs failed when their run fails or is canceled",
    default_status=DefaultSensorStatus.RUNNING,
)
def ingest_run_failure_sensor(context: RunFailureSensorContext):
    """
    Handle run failures and cancellations for ingest_file_job.
    """
    dagster_run = context.dagster_run
    job_name = dagster_run.job_name

    if job_name not in TRACKED_JOBS:
        context.log.debug(f"Skipping untracked job: {job_name}")
        return

    dagster_run_id = dagster_run.run_id
    job_id = _get_job_id_from_run(dagster_run.tags, dagster_run.run_config)

    if not job_id:
        context.log.warning(
            f"Run {dagster_run_id} has no job_id tag, cannot update job status"
        )
        return

    if dagster_run.status == DagsterRunStatus.CANCELED:
        error_message = f"Run canceled. See Dagster UI for details: {dagster_run_id}"
    else:
        error_message = f"Run failed. See Dagster UI for details: {dagster_run_id}"

    context.log.info(
        f"Run {dagster_run_id} failed for job_id={job_id}, updating job status"
    )
    _mark_job_failed(_get_reporter(context.log), job_id, error_message, context.log)

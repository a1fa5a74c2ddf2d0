# =============================================================================
# Ingest Ops - Uploaded File to Destination Table
# =============================================================================
# Runs the "process file" flow for one uploaded CSV/Excel file: download from
# the uploads bucket, infer the schema, provision the table and load batches,
# reporting job status to MongoDB throughout.
# =============================================================================

from typing import Any, Dict, Optional

from dagster import Config, OpExecutionContext, Out, op
from pydantic import Field

from libs.ingestion.processor import FileProcessor
from libs.models import IngestSettings, JobStatus

__all__ = ["IngestFileConfig", "process_uploaded_file"]


class IngestFileConfig(Config):
    """Run config for process_uploaded_file (set by the webapp trigger)."""

    key: str = Field(..., description="Object key of the uploaded file")
    job_id: str = Field(..., description="Caller-assigned job identifier")
    table_name: Optional[str] = Field(None, description="Destination table override")
    batch_size: Optional[int] = Field(None, ge=1, description="Rows per insert batch override")


def _process_uploaded_file(
    minio,
    postgres,
    mongodb,
    request: Dict[str, Any],
    settings: IngestSettings,
    log,
) -> Dict[str, Any]:
    """
    Core logic for processing one uploaded file.

    This function is extracted for easier unit testing.

    Args:
        minio: MinIOResource instance
        postgres: PostgresResource instance
        mongodb: MongoDBResource instance
        request: Trigger input (key, job_id, optional table_name)
        settings: IngestSettings for batching, sampling and deadline
        log: Logger instance

    Returns:
        ProcessResult as a JSON-compatible dict

    Raises:
        InputError: If the trigger input is invalid
        RuntimeError: If the job ended failed (so the Dagster run fails too)
    """
    reporter = mongodb.get_reporter(log)
    processor = FileProcessor(
        object_store=minio,
        database=postgres,
        reporter=reporter,
        settings=settings,
        log=log,
    )

    try:
        result = processor.process(request)
    finally:
        reporter.close()

    if result.status == JobStatus.FAILED:
        raise RuntimeError(f"Ingest job {result.job_id} failed: {result.error}")

    log.info(
        f"Ingest job {result.job_id} completed: {result.load.rows_written} rows written, "
        f"{result.load.rows_failed} rows failed"
    )
    return result.model_dump(mode="json")


@op(
    out={"process_result": Out(dagster_type=dict)},
    required_resource_keys={"minio", "postgres", "mongodb"},
    tags={"kind": "ingest"},
)
def process_uploaded_file(context: OpExecutionContext, config: IngestFileConfig) -> dict:
    """
    Load an uploaded CSV/Excel file into its destination table.

    Args:
        context: Dagster op execution context
        config: Uploaded file key, job id and optional table / batch size overrides

    Returns:
        Dict containing:
        - job_id, status, table_name
        - columns: inferred column name → type
        - load: rows_written, rows_failed, batches_total, batches_failed, errors

    Raises:
        RuntimeError: If the job ended failed
    """
    settings = IngestSettings()
    if config.batch_size is not None:
        settings = settings.model_copy(update={"batch_size": config.batch_size})

    return _process_uploaded_file(
        minio=context.resources.minio,
        postgres=context.resources.postgres,
        mongodb=context.resources.mongodb,
        request={
            "key": config.key,
            "job_id": config.job_id,
            "table_name": config.table_name,
        },
        settings=settings,
        log=context.log,
    )

# =============================================================================
# Ingest Router
# =============================================================================
# Endpoints for triggering file ingestion and polling job status.
# =============================================================================

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.services.dagster_service import get_dagster_service
from app.services.job_service import get_job_service
from libs.ingestion.errors import InputError, InvalidTransitionError, StatusStoreError
from libs.ingestion.processor import FileProcessor
from libs.models import IngestRequest, JobStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingest", tags=["ingest"])


class IngestResponse(BaseModel):
    """Response for an accepted ingest trigger."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    run_id: str
    status: JobStatus


@router.post("", status_code=202, response_model=IngestResponse, response_model_by_alias=True)
async def trigger_ingest(request: IngestRequest) -> IngestResponse:
    """
    Queue a job for an uploaded file and launch the worker run.

    The destination table is resolved (normalized, or derived from the file
    name) before the job is queued, so the queued record already carries the
    name the worker will load into.

    Returns 409 if the job id is already tracked, 502 if Dagster does not
    accept the run.
    """
    try:
        table_name = FileProcessor.resolve_table_name(request)
    except InputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    jobs = get_job_service()

    try:
        if jobs.get_job(request.job_id) is not None:
            raise HTTPException(status_code=409, detail=f"Job already exists: {request.job_id}")
        jobs.queue_job(request.job_id, request.key, table_name)
    except StatusStoreError as exc:
        raise HTTPException(status_code=503, detail=f"Job status store unavailable: {exc}") from exc

    try:
        run_id = get_dagster_service().launch_ingest_run(
            key=request.key,
            job_id=request.job_id,
            table_name=table_name,
        )
    except Exception as exc:
        logger.error(f"Failed to launch run for job {request.job_id}: {exc}")
        try:
            jobs.fail_job(request.job_id, error=f"Failed to launch worker run: {exc}")
        except InvalidTransitionError as transition_exc:
            logger.warning(f"Could not mark job {request.job_id} failed: {transition_exc}")
        raise HTTPException(
            status_code=502,
            detail=f"Failed to launch ingest run: {exc}",
        ) from exc

    return IngestResponse(job_id=request.job_id, run_id=run_id, status=JobStatus.QUEUED)


@router.get("/jobs/{job_id}")
async def get_job_status(job_id: str) -> JSONResponse:
    """
    Current status record for a job, serialized in camelCase.

    Unknown and expired jobs both return 404.
    """
    try:
        record = get_job_service().get_job(job_id)
    except StatusStoreError as exc:
        raise HTTPException(status_code=503, detail=f"Job status store unavailable: {exc}") from exc

    if record is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")

    return JSONResponse(content=record.model_dump(mode="json", by_alias=True, exclude_none=True))

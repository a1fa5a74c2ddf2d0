# =============================================================================
# Job Model
# =============================================================================
# Defines the Job status record written by the ingestion worker and read by
# the polling status endpoint.
# =============================================================================

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


__all__ = [
    "JobStatus",
    "JobProgress",
    "JobRecord",
    "TERMINAL_STATUSES",
    "ALLOWED_TRANSITIONS",
    "is_transition_allowed",
]


class JobStatus(str, Enum):
    """Lifecycle state of a file-processing job."""

    QUEUED = "queued"
    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset([JobStatus.COMPLETED, JobStatus.FAILED])

# processing → processing carries per-batch progress updates
ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset([JobStatus.DOWNLOADING, JobStatus.FAILED]),
    JobStatus.DOWNLOADING: frozenset([JobStatus.PROCESSING, JobStatus.FAILED]),
    JobStatus.PROCESSING: frozenset(
        [JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED]
    ),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def is_transition_allowed(current: Optional[JobStatus], new: JobStatus) -> bool:
    """
    Check whether a job may move from ``current`` to ``new``.

    A job with no recorded status may start in any state; the worker can be
    invoked without a prior "queued" record.
    """
    if current is None:
        return True
    return new in ALLOWED_TRANSITIONS[current]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobProgress(_CamelModel):
    """
    Progress counters for a job.

    Attributes:
        rows_written: Rows committed to the destination table so far
        rows_failed: Rows in batches that failed to insert
        batches_completed: Batches attempted so far (successful or not)
        total_rows: Total data rows when the source format exposes it
    """

    rows_written: int = Field(0, ge=0)
    rows_failed: int = Field(0, ge=0)
    batches_completed: int = Field(0, ge=0)
    total_rows: Optional[int] = Field(None, ge=0)


class JobRecord(_CamelModel):
    """
    Job status record as stored in the status store.

    Attributes:
        job_id: Caller-assigned job identifier
        status: Current lifecycle state
        progress: Progress counters
        message: Human-readable status line
        error: Error summary (failed jobs only)
        file_key: Object-store key of the uploaded file
        table_name: Destination table
        created_at: When the job was first recorded
        updated_at: Last status write
    """

    job_id: str = Field(..., min_length=1)
    status: JobStatus
    progress: JobProgress = Field(default_factory=JobProgress)
    message: Optional[str] = None
    error: Optional[str] = None
    file_key: Optional[str] = None
    table_name: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

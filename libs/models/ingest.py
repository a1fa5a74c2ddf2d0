# =============================================================================
# Ingestion Models
# =============================================================================
# Trigger input, uploaded file description and load outcome models.
# =============================================================================

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .job import JobStatus

__all__ = [
    "IngestRequest",
    "UploadedFile",
    "BatchFailure",
    "LoadResult",
    "ProcessResult",
]


class IngestRequest(BaseModel):
    """
    Trigger input for processing one uploaded file.

    Accepts both snake_case and the camelCase keys sent by the upload UI
    (``jobId``, ``tableName`` or ``table``).

    Attributes:
        key: Object-store key (or s3:// path) of the uploaded file
        job_id: Caller-assigned job identifier
        table_name: Destination table; derived from the filename when omitted
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    key: str = Field(..., description="Object-store key of the uploaded file")
    job_id: str = Field(..., description="Caller-assigned job identifier")
    table_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("table_name", "tableName", "table"),
        description="Destination table override",
    )

    @field_validator("key", "job_id")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class UploadedFile(BaseModel):
    """Uploaded file as described by the object store."""

    key: str
    filename: str
    content_type: Optional[str] = None
    size: Optional[int] = Field(None, ge=0)


class BatchFailure(BaseModel):
    """
    A batch that could not be inserted.

    Attributes:
        batch_index: 0-based batch position
        start_row: 1-based data-row number of the first row in the batch
        row_count: Rows in the batch
        error_type: Exception class name (SchemaMismatchError, BatchInsertError)
        message: Error detail
    """

    batch_index: int = Field(..., ge=0)
    start_row: int = Field(..., ge=1)
    row_count: int = Field(..., ge=0)
    error_type: str
    message: str


class LoadResult(BaseModel):
    """Outcome of loading a batch sequence into a table."""

    rows_written: int = 0
    rows_failed: int = 0
    batches_total: int = 0
    batches_failed: int = 0
    errors: list[BatchFailure] = Field(default_factory=list)

    @property
    def batches_succeeded(self) -> int:
        return self.batches_total - self.batches_failed

    def summary(self, limit: int = 3) -> str:
        """Short error summary suitable for a job status record."""
        if not self.errors:
            return ""
        parts = [
            f"batch {e.batch_index} (rows {e.start_row}-{e.start_row + e.row_count - 1}): "
            f"{e.error_type}: {e.message}"
            for e in self.errors[:limit]
        ]
        remaining = len(self.errors) - limit
        if remaining > 0:
            parts.append(f"... and {remaining} more failed batch(es)")
        return "; ".join(parts)


class ProcessResult(BaseModel):
    """Final outcome of one "process file" invocation."""

    job_id: str
    status: JobStatus
    table_name: Optional[str] = None
    columns: Optional[dict[str, str]] = Field(None, description="Column name → inferred type")
    load: Optional[LoadResult] = None
    error: Optional[str] = None


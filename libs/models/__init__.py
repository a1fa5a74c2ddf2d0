# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and schemas for the file ingestion worker.
# =============================================================================

"""
Data models for the ingestion worker.

This library provides:
- Job: status record, progress counters and lifecycle rules
- Schema: inferred column types for destination tables
- Ingest: trigger input and load outcome models
- Configuration models
"""

__version__ = "0.1.0"

# Job models
from .job import (
    JobStatus,
    JobProgress,
    JobRecord,
    TERMINAL_STATUSES,
    ALLOWED_TRANSITIONS,
    is_transition_allowed,
)

# Schema models
from .schema import (
    ColumnType,
    ColumnSpec,
    InferredSchema,
)

# Ingest models
from .ingest import (
    IngestRequest,
    UploadedFile,
    BatchFailure,
    LoadResult,
    ProcessResult,
)

# Configuration models
from .config import (
    MinIOSettings,
    MongoSettings,
    PostgresSettings,
    IngestSettings,
)

__all__ = [
    # Job models
    "JobStatus",
    "JobProgress",
    "JobRecord",
    "TERMINAL_STATUSES",
    "ALLOWED_TRANSITIONS",
    "is_transition_allowed",
    # Schema models
    "ColumnType",
    "ColumnSpec",
    "InferredSchema",
    # Ingest models
    "IngestRequest",
    "UploadedFile",
    "BatchFailure",
    "LoadResult",
    "ProcessResult",
    # Configuration models
    "MinIOSettings",
    "MongoSettings",
    "PostgresSettings",
    "IngestSettings",
]

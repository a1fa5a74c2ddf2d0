# =============================================================================
# Ingestion Library
# =============================================================================
# Table provisioning, bulk loading, job status reporting and the
# "process file" orchestration for uploaded spreadsheets.
# =============================================================================

"""
Ingestion core for the file ingestion worker.

Modules:
- errors: exception hierarchy (re-exported here)
- ddl / provisioner: InferredSchema → destination table
- loader: batched, per-transaction inserts
- job_store / reporter: job status records with a retention window
- processor: FileProcessor, the end-to-end "process file" flow

Only the errors are re-exported at package level; tabular_utils imports
them, so pulling the processor in here would make the import cyclic.
"""

from .errors import (
    IngestError,
    InputError,
    SourceFetchError,
    ParseError,
    RowSourceError,
    ProvisioningError,
    SchemaMismatchError,
    BatchInsertError,
    CoercionError,
    StatusStoreError,
    InvalidTransitionError,
    JobTimeoutError,
)

__version__ = "0.1.0"

__all__ = [
    "IngestError",
    "InputError",
    "SourceFetchError",
    "ParseError",
    "RowSourceError",
    "ProvisioningError",
    "SchemaMismatchError",
    "BatchInsertError",
    "CoercionError",
    "StatusStoreError",
    "InvalidTransitionError",
    "JobTimeoutError",
]

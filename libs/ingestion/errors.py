# =============================================================================
# Ingestion Errors
# =============================================================================
# Exception hierarchy raised by the ingestion worker. Fetch and parse errors
# abort a job; batch-level errors are collected into the LoadResult.
# =============================================================================

from typing import Optional

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


class IngestError(Exception):
    """Base class for ingestion worker errors."""


class InputError(IngestError):
    """Trigger input is missing or malformed (raised before any I/O)."""


class SourceFetchError(IngestError):
    """The uploaded file could not be read from object storage."""


class ParseError(IngestError):
    """
    The uploaded file could not be parsed.

    Attributes:
        row_number: 1-based data-row number (header excluded) where parsing
            failed, when known
    """

    def __init__(self, message: str, row_number: Optional[int] = None):
        self.detail = message
        if row_number is not None:
            message = f"{message} (row {row_number})"
        super().__init__(message)
        self.row_number = row_number


class RowSourceError(ParseError):
    """The row stream failed after batching had started."""


class ProvisioningError(IngestError):
    """The destination table could not be created."""


class SchemaMismatchError(IngestError):
    """Row values do not fit the destination table's columns."""


class BatchInsertError(IngestError):
    """A batch insert was rejected by the database."""


class CoercionError(IngestError):
    """A cell value could not be converted to its column's inferred type."""

    def __init__(self, column: str, value: str, expected: str):
        super().__init__(f"Column '{column}': cannot convert {value!r} to {expected}")
        self.column = column
        self.value = value
        self.expected = expected


class StatusStoreError(IngestError):
    """The job status store is unreachable or rejected a read/write."""


class InvalidTransitionError(IngestError):
    """A status write would move a job out of a terminal state."""


class JobTimeoutError(IngestError):
    """The job exceeded its processing deadline."""

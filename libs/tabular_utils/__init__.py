# =============================================================================
# Tabular Utils Library
# =============================================================================
# Parsing-side helpers for uploaded spreadsheets: header normalization, type
# inference, streaming row sources and batching.
# =============================================================================

"""
Tabular utilities for the ingestion worker.

This library provides:
- normalize_headers / normalize_identifier: Postgres-safe column and table names
- infer_schema: sample-based column type inference
- open_row_source: streaming CSV / Excel readers
- iter_batches: fixed-size batching of a row stream
"""

from .headers import normalize_headers, normalize_identifier
from .type_inference import infer_schema
from .readers import RowSource, open_row_source
from .batching import Batch, iter_batches

__version__ = "0.1.0"

__all__ = [
    "normalize_headers",
    "normalize_identifier",
    "infer_schema",
    "RowSource",
    "open_row_source",
    "Batch",
    "iter_batches",
]

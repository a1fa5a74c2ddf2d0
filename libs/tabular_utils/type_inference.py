# =============================================================================
# Type Inference Module
# =============================================================================
# Infers a destination schema from a header row and a sample of data rows.
# Pure functions: no I/O, deterministic for a given input.
# =============================================================================

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Tuple

from libs.ingestion.errors import ParseError
from libs.models import ColumnSpec, ColumnType, InferredSchema

from .headers import normalize_headers

__all__ = [
    "DATE_FORMATS",
    "TRUE_TOKENS",
    "FALSE_TOKENS",
    "is_integer",
    "is_decimal",
    "match_date_format",
    "parse_date",
    "parse_boolean",
    "infer_column_type",
    "infer_schema",
]

# Tried in order; the first format that fits every sampled value wins
DATE_FORMATS: Tuple[str, ...] = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%d.%m.%Y",
)

TRUE_TOKENS = frozenset(["true", "t", "yes", "y", "si", "sí", "1"])
FALSE_TOKENS = frozenset(["false", "f", "no", "n", "0"])

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def is_integer(value: str) -> bool:
    """Whole number that fits a 64-bit signed integer (BIGINT)."""
    if not _INTEGER_PATTERN.match(value):
        return False
    return _INT64_MIN <= int(value) <= _INT64_MAX


def is_decimal(value: str) -> bool:
    """Finite number in plain or scientific notation."""
    try:
        number = Decimal(value)
    except (InvalidOperation, ValueError):
        return False
    return number.is_finite() and math.isfinite(float(number))


def parse_date(value: str, fmt: str) -> Optional[date]:
    try:
        return datetime.strptime(value, fmt).date()
    except ValueError:
        return None


def match_date_format(values: Sequence[str]) -> Optional[str]:
    """
    Return the first accepted date format that parses every value.

    Mixing formats within one column is not a date column: "2024-01-31" and
    "31/01/2024" together fall through to text.
    """
    if not values:
        return None
    for fmt in DATE_FORMATS:
        if all(parse_date(v, fmt) is not None for v in values):
            return fmt
    return None


def parse_boolean(value: str) -> Optional[bool]:
    token = value.strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    return None


def infer_column_type(values: Sequence[Optional[str]]) -> Tuple[ColumnType, Optional[str]]:
    """
    Infer the storage type for one column from its sampled values.

    Empty cells are ignored. Precedence: integer, decimal, date, boolean,
    text. A column with no non-empty samples is text.

    Returns:
        Tuple of (column type, date format for date columns else None)
    """
    samples = [v.strip() for v in values if v is not None and v.strip()]
    if not samples:
        return ColumnType.TEXT, None

    if all(is_integer(v) for v in samples):
        # "0"/"1" flags stay integers; integer wins over boolean
        return ColumnType.INTEGER, None

    if all(is_decimal(v) for v in samples):
        return ColumnType.DECIMAL, None

    date_format = match_date_format(samples)
    if date_format is not None:
        return ColumnType.DATE, date_format

    if all(parse_boolean(v) is not None for v in samples):
        return ColumnType.BOOLEAN, None

    return ColumnType.TEXT, None


def infer_schema(
    header: Sequence[Optional[str]],
    sample_rows: Sequence[Sequence[Optional[str]]],
) -> InferredSchema:
    """
    Derive an ordered column schema from a header row and sampled data rows.

    Header cells are normalized into unique Postgres identifiers; each
    column's type comes from :func:`infer_column_type` over the sampled
    values in that position (rows shorter than the header count as empty
    cells).

    Args:
        header: Header row cells in file order.
        sample_rows: Leading data rows of the file (may be empty).

    Returns:
        InferredSchema with one column per header cell, in header order.

    Raises:
        ParseError: If the header row is empty.
    """
    if not header:
        raise ParseError("File has no header row")

    raw_headers: List[str] = ["" if h is None else str(h) for h in header]
    _, names = normalize_headers(raw_headers)

    columns: List[ColumnSpec] = []
    for idx, name in enumerate(names):
        values = [row[idx] if idx < len(row) else None for row in sample_rows]
        column_type, date_format = infer_column_type(values)
        columns.append(
            ColumnSpec(
                name=name,
                source_header=raw_headers[idx],
                type=column_type,
                date_format=date_format,
            )
        )

    return InferredSchema(columns=columns)

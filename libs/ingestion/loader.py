# =============================================================================
# Bulk Loader
# =============================================================================
# Inserts batches into the destination table, one transaction per batch.
# Batch-level failures are recorded and the run continues; errors from the
# row source itself propagate.
# =============================================================================

import logging
import time
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import Table
from sqlalchemy.exc import DataError, IntegrityError, ProgrammingError, SQLAlchemyError

from libs.models import BatchFailure, ColumnSpec, ColumnType, InferredSchema, LoadResult
from libs.tabular_utils.batching import Batch
from libs.tabular_utils.type_inference import DATE_FORMATS, is_integer, parse_boolean

from .errors import BatchInsertError, CoercionError, IngestError, JobTimeoutError, SchemaMismatchError

__all__ = ["ProgressCallback", "coerce_value", "coerce_row", "BulkLoader"]

logger = logging.getLogger(__name__)

# on_progress(rows_written_so_far, batch_index, rows_failed_so_far)
ProgressCallback = Callable[[int, int, int], None]


def _coerce_date(text: str, fmt: Optional[str]) -> date:
    formats = (fmt,) if fmt else DATE_FORMATS
    for candidate in formats:
        try:
            return datetime.strptime(text, candidate).date()
        except ValueError:
            continue
    raise ValueError(text)


def coerce_value(value: Optional[str], column: ColumnSpec) -> Any:
    """
    Convert a raw cell to the Python value bound for ``column``.

    Empty and whitespace-only cells become NULL for every type.

    Raises:
        CoercionError: If the value does not parse as the column's type
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    column_type = column.type
    if column_type == ColumnType.TEXT:
        return value

    if column_type == ColumnType.INTEGER:
        if is_integer(text):
            return int(text)
    elif column_type == ColumnType.DECIMAL:
        try:
            number = Decimal(text)
        except (InvalidOperation, ValueError):
            number = None
        if number is not None and number.is_finite():
            return number
    elif column_type == ColumnType.DATE:
        try:
            return _coerce_date(text, column.date_format)
        except ValueError:
            pass
    elif column_type == ColumnType.BOOLEAN:
        parsed = parse_boolean(text)
        if parsed is not None:
            return parsed

    raise CoercionError(column.name, value, column_type.value)


def coerce_row(row: Sequence[Optional[str]], columns: List[ColumnSpec]) -> Dict[str, Any]:
    """Bind one row to column names; rows shorter than the schema are padded with NULL."""
    return {
        spec.name: coerce_value(row[idx] if idx < len(row) else None, spec)
        for idx, spec in enumerate(columns)
    }


class BulkLoader:
    """
    Loads a batch sequence into a table with per-batch atomicity.

    ``database`` is anything exposing ``begin()`` (a transaction context
    manager yielding a connection) and ``insert_rows(conn, table, rows)``.

    Attributes:
        result: Running LoadResult; still readable after ``load`` raised
    """

    def __init__(
        self,
        database,
        log=None,
        deadline: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.database = database
        self.log = log or logger
        self.deadline = deadline
        self.clock = clock
        self.result = LoadResult()

    def _check_deadline(self, batch: Batch) -> None:
        if self.deadline is not None and self.clock() >= self.deadline:
            raise JobTimeoutError(
                f"Processing timed out before batch {batch.index} "
                f"({self.result.rows_written} rows already written)"
            )

    def _insert_batch(self, table: Table, schema: InferredSchema, batch: Batch) -> None:
        try:
            records = [coerce_row(row, schema.columns) for row in batch.rows]
        except CoercionError as e:
            raise BatchInsertError(f"Row coercion failed: {e}") from e

        try:
            with self.database.begin() as conn:
                self.database.insert_rows(conn, table, records)
        except IntegrityError as e:
            raise BatchInsertError(f"Constraint violation: {e.orig}") from e
        except (DataError, ProgrammingError) as e:
            raise SchemaMismatchError(f"Rows do not fit table {table.name}: {e.orig}") from e
        except SQLAlchemyError as e:
            raise BatchInsertError(f"Insert failed: {e}") from e

    def _record_failure(self, batch: Batch, error: IngestError) -> None:
        self.result.rows_failed += len(batch)
        self.result.batches_failed += 1
        self.result.errors.append(
            BatchFailure(
                batch_index=batch.index,
                start_row=batch.start_row,
                row_count=len(batch),
                error_type=type(error).__name__,
                message=str(error),
            )
        )
        self.log.warning(
            f"Batch {batch.index} (rows {batch.start_row}-{batch.end_row}) failed: "
            f"{type(error).__name__}: {error}"
        )

    def load(
        self,
        table: Table,
        schema: InferredSchema,
        batches: Iterable[Batch],
        on_progress: Optional[ProgressCallback] = None,
    ) -> LoadResult:
        """
        Insert every batch, continuing past batch-level failures.

        Args:
            table: Destination table (from TableProvisioner)
            schema: Inferred schema the rows are coerced against
            batches: Batch sequence (consumed lazily)
            on_progress: Called after every batch, successful or not

        Returns:
            LoadResult with written/failed counts and per-batch errors

        Raises:
            RowSourceError: If the row source fails mid-stream
            JobTimeoutError: If the deadline passes before a batch is inserted
        """
        for batch in batches:
            self._check_deadline(batch)

            try:
                self._insert_batch(table, schema, batch)
                self.result.rows_written += len(batch)
            except (BatchInsertError, SchemaMismatchError) as e:
                self._record_failure(batch, e)

            self.result.batches_total += 1
            if on_progress is not None:
                on_progress(self.result.rows_written, batch.index, self.result.rows_failed)

        self.log.info(
            f"Loaded {self.result.rows_written} rows into {table.name} "
            f"({self.result.batches_total} batches, {self.result.batches_failed} failed)"
        )
        return self.result

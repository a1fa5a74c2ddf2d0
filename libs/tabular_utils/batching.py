# =============================================================================
# Row Batcher
# =============================================================================
# Groups a lazy row stream into fixed-size batches. Pull-based: a batch is
# only built when the consumer asks for it, so memory stays O(batch_size).
# =============================================================================

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence

from libs.ingestion.errors import ParseError, RowSourceError

__all__ = ["Batch", "iter_batches"]


@dataclass
class Batch:
    """
    A contiguous group of data rows inserted as one transaction.

    Attributes:
        index: 0-based batch position
        start_row: 1-based data-row number of the first row (header excluded)
        rows: Rows in source order
    """

    index: int
    start_row: int
    rows: List[Sequence] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def end_row(self) -> int:
        return self.start_row + len(self.rows) - 1


def iter_batches(rows: Iterable[Sequence], batch_size: int) -> Iterator[Batch]:
    """
    Yield successive batches of at most ``batch_size`` rows.

    Every row is yielded exactly once, in source order; only the final batch
    may be shorter. If the row source raises mid-stream, the error surfaces
    as :class:`RowSourceError` naming the 1-based data row that failed;
    batches already yielded are unaffected and the partial batch being
    assembled is discarded.

    Args:
        rows: Row iterable (consumed lazily)
        batch_size: Maximum rows per batch, must be >= 1

    Raises:
        ValueError: If ``batch_size`` < 1
        RowSourceError: If the row source fails mid-stream

    Examples:
        >>> [len(b) for b in iter_batches(range(5), 2)]
        [2, 2, 1]
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return _generate_batches(rows, batch_size)


def _generate_batches(rows: Iterable[Sequence], batch_size: int) -> Iterator[Batch]:
    iterator = iter(rows)
    index = 0
    rows_seen = 0
    current: List[Sequence] = []

    while True:
        try:
            row = next(iterator)
        except StopIteration:
            break
        except ParseError as e:
            row_number = e.row_number or rows_seen + 1
            raise RowSourceError(
                f"Row source failed: {e.detail}", row_number=row_number
            ) from e
        except Exception as e:
            raise RowSourceError(
                f"Row source failed: {e}", row_number=rows_seen + 1
            ) from e

        rows_seen += 1
        current.append(row)
        if len(current) == batch_size:
            yield Batch(index=index, start_row=rows_seen - batch_size + 1, rows=current)
            index += 1
            current = []

    if current:
        yield Batch(index=index, start_row=rows_seen - len(current) + 1, rows=current)

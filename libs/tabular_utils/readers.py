# =============================================================================
# Row Sources - Streaming CSV / Excel Readers
# =============================================================================
# Turns a downloaded upload into a header row plus a lazy iterator of data
# rows. CSV is streamed in fixed-size blocks with pyarrow; Excel is streamed
# with openpyxl's read-only mode. Every cell is surfaced as a string (or None)
# so type inference and coercion see the same values.
# =============================================================================

import csv
import logging
import zipfile
from abc import ABC, abstractmethod
from datetime import date, datetime, time
from itertools import chain, islice
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

import chardet
import pyarrow as pa
from pyarrow import csv as pa_csv
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from libs.ingestion.errors import ParseError

__all__ = [
    "ParsedRow",
    "CSV_EXTENSIONS",
    "EXCEL_EXTENSIONS",
    "RowSource",
    "CsvRowSource",
    "ExcelRowSource",
    "detect_encoding",
    "detect_delimiter",
    "render_cell",
    "open_row_source",
]

log = logging.getLogger(__name__)

ParsedRow = Tuple[Optional[str], ...]

CSV_EXTENSIONS = frozenset([".csv", ".txt"])
EXCEL_EXTENSIONS = frozenset([".xlsx", ".xlsm"])

# Bytes inspected for encoding and delimiter detection
SNIFF_BYTES = 64 * 1024
CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
DEFAULT_BLOCK_SIZE = 1 << 20
# Excel rows read ahead to size the header past trailing blank header cells
EXCEL_WIDTH_LOOKAHEAD_ROWS = 1000


# -----------------------------------------------------------------------------
# Detection helpers
# -----------------------------------------------------------------------------
def detect_encoding(file_bytes: bytes) -> str:
    """
    Detect text encoding using chardet.

    Returns a codec name usable by both Python and pyarrow. Plain ASCII and
    UTF-8 variants (with or without BOM) are reported as "utf-8".
    """
    if not file_bytes:
        return "utf-8"
    result = chardet.detect(file_bytes)
    encoding = result["encoding"] or "utf-8"

    encoding_lower = encoding.lower()
    if "utf-8" in encoding_lower or encoding_lower == "ascii":
        return "utf-8"
    if "iso-8859" in encoding_lower or "latin" in encoding_lower:
        return "iso-8859-1"
    if "windows" in encoding_lower or "cp125" in encoding_lower:
        return "windows-1252"
    return encoding


def detect_delimiter(header_line: str) -> str:
    """
    Pick the delimiter of a CSV header line.

    Counts each candidate outside quoted sections and returns the most
    frequent one; a single-column file falls back to ",".

    Examples:
        >>> detect_delimiter("nombre;monto;fecha")
        ';'
        >>> detect_delimiter('"a,b";c;d')
        ';'
    """
    counts = {d: 0 for d in CANDIDATE_DELIMITERS}
    in_quotes = False
    for char in header_line:
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes and char in counts:
            counts[char] += 1

    best = max(CANDIDATE_DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] > 0 else ","


def render_cell(value: Any) -> Optional[str]:
    """
    Render a spreadsheet cell value as the string a CSV export would hold.

    Examples:
        >>> render_cell(10.0)
        '10'
        >>> render_cell(datetime(2024, 1, 2))
        '2024-01-02'
        >>> render_cell(True)
        'true'
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def _filled_width(cells: List[Optional[str]]) -> int:
    """Position just past the last non-blank cell (0 for a blank row)."""
    for idx in range(len(cells) - 1, -1, -1):
        if cells[idx] is not None and cells[idx].strip():
            return idx + 1
    return 0


def _fit_row(values: List[Optional[str]], width: int) -> ParsedRow:
    if len(values) < width:
        values = values + [None] * (width - len(values))
    return tuple(values[:width])


# -----------------------------------------------------------------------------
# Row sources
# -----------------------------------------------------------------------------
class RowSource(ABC):
    """
    Header row plus a lazy, single-pass iterator of data rows.

    Attributes:
        header: Raw header cells in file order
        total_rows: Number of data rows when the format exposes it cheaply
    """

    header: List[str]
    total_rows: Optional[int] = None

    @abstractmethod
    def rows(self) -> Iterator[ParsedRow]:
        """Yield data rows (header excluded), each as wide as the header."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "RowSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class CsvRowSource(RowSource):
    """
    Streaming CSV reader backed by ``pyarrow.csv.open_csv``.

    Encoding and delimiter are sniffed from the first 64 KiB. The header line
    is parsed up front; data rows are read block by block with every column
    typed as string, so memory stays bounded by ``block_size``. A malformed
    row fails the whole block holding it: rows of that block before the bad
    row are never yielded, and the ParseError names the bad row.
    """

    def __init__(self, path: str, block_size: int = DEFAULT_BLOCK_SIZE):
        self.path = path
        self.block_size = block_size

        with open(path, "rb") as f:
            raw = f.read(SNIFF_BYTES)

        self.encoding = detect_encoding(raw)
        text = raw.decode("utf-8-sig" if self.encoding == "utf-8" else self.encoding, errors="replace")
        lines = text.splitlines()
        if not lines or not lines[0].strip():
            raise ParseError("File is empty or has no header row")

        header_line = lines[0]
        self.delimiter = detect_delimiter(header_line)
        self.header = next(csv.reader([header_line], delimiter=self.delimiter))
        if not any(cell.strip() for cell in self.header):
            raise ParseError("File has an empty header row")

        file_size = Path(path).stat().st_size
        self._header_only = file_size <= len(raw) and not any(
            line.strip() for line in lines[1:]
        )
        self._invalid_row: Optional[int] = None

        log.debug(
            f"CSV source {path}: encoding={self.encoding} "
            f"delimiter={self.delimiter!r} columns={len(self.header)}"
        )

    def _on_invalid_row(self, row) -> str:
        # row.number is the physical line number (1 = header line)
        if row.number is not None and row.number > 0:
            self._invalid_row = row.number - 1
        log.warning(
            f"Malformed CSV row: expected {row.expected_columns} columns, "
            f"got {row.actual_columns}"
        )
        return "error"

    def _open_reader(self):
        column_names = [f"f{i}" for i in range(len(self.header))]
        return pa_csv.open_csv(
            self.path,
            read_options=pa_csv.ReadOptions(
                skip_rows=1,
                column_names=column_names,
                encoding=self.encoding,
                block_size=self.block_size,
                use_threads=False,
            ),
            parse_options=pa_csv.ParseOptions(
                delimiter=self.delimiter,
                newlines_in_values=True,
                invalid_row_handler=self._on_invalid_row,
            ),
            convert_options=pa_csv.ConvertOptions(
                column_types={name: pa.string() for name in column_names},
                strings_can_be_null=False,
                quoted_strings_can_be_null=False,
            ),
        )

    def rows(self) -> Iterator[ParsedRow]:
        if self._header_only:
            return

        rows_read = 0
        try:
            reader = self._open_reader()
            for record_batch in reader:
                columns = [column.to_pylist() for column in record_batch.columns]
                for row in zip(*columns):
                    rows_read += 1
                    yield row
        except (pa.ArrowInvalid, UnicodeDecodeError) as e:
            row_number = self._invalid_row or rows_read + 1
            raise ParseError(f"Malformed CSV data: {e}", row_number=row_number) from e


class ExcelRowSource(RowSource):
    """
    Streaming reader for the first worksheet of an .xlsx workbook.

    Fully blank rows are skipped. The header is as wide as the rightmost
    non-blank cell in the header row or in the first
    ``EXCEL_WIDTH_LOOKAHEAD_ROWS`` data rows, so data under a blank header
    cell gets a ``column_N`` name instead of being dropped. Rows are padded
    to that width; trailing empty cells past it are ignored, and a later row
    with values past it raises ParseError.
    """

    def __init__(self, path: str):
        self.path = path
        try:
            self._workbook = load_workbook(path, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            raise ParseError(f"Corrupt or unreadable spreadsheet: {e}") from e

        if not self._workbook.worksheets:
            self.close()
            raise ParseError("Workbook has no worksheets")

        sheet = self._workbook.worksheets[0]
        self._rows_iter = sheet.iter_rows(values_only=True)

        header_row = next(self._rows_iter, None)
        header = [render_cell(v) or "" for v in (header_row or ())]
        if not _filled_width(header):
            self.close()
            raise ParseError("Worksheet is empty or has no header row")

        self._lookahead = [
            [render_cell(v) for v in values]
            for values in islice(self._rows_iter, EXCEL_WIDTH_LOOKAHEAD_ROWS)
        ]
        width = max([_filled_width(header)] + [_filled_width(cells) for cells in self._lookahead])

        self.header = [cell or "" for cell in _fit_row(header, width)]
        max_row = sheet.max_row
        self.total_rows = max_row - 1 if max_row else None

    def rows(self) -> Iterator[ParsedRow]:
        width = len(self.header)
        remaining = ([render_cell(v) for v in values] for values in self._rows_iter)
        lookahead, self._lookahead = self._lookahead, []
        for row_number, cells in enumerate(chain(lookahead, remaining), start=1):
            filled = _filled_width(cells)
            if not filled:
                continue
            if filled > width:
                raise ParseError(
                    f"Row has values beyond the {width} header columns", row_number=row_number
                )
            yield _fit_row(cells, width)

    def close(self) -> None:
        self._workbook.close()


def open_row_source(
    path: str,
    filename: str,
    csv_block_size: int = DEFAULT_BLOCK_SIZE,
) -> RowSource:
    """
    Open a row source for a downloaded upload, choosing the format by extension.

    Args:
        path: Local path of the downloaded file
        filename: Original file name (used for the extension)
        csv_block_size: Bytes per CSV read block

    Raises:
        ParseError: Unsupported extension, empty file or unreadable header
    """
    extension = Path(filename).suffix.lower()
    if extension in CSV_EXTENSIONS:
        return CsvRowSource(path, block_size=csv_block_size)
    if extension in EXCEL_EXTENSIONS:
        return ExcelRowSource(path)
    raise ParseError(f"Unsupported file format: '{extension or filename}'")

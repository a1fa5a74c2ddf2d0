"""
Unit tests for value coercion and the bulk loader.

Batch isolation is exercised with a mocked database; the happy path runs
real inserts against in-memory SQLite.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import DataError, IntegrityError, OperationalError

from libs.ingestion.errors import CoercionError, JobTimeoutError, RowSourceError
from libs.ingestion.loader import BulkLoader, coerce_row, coerce_value
from libs.ingestion.provisioner import TableProvisioner
from libs.models import ColumnSpec, ColumnType, InferredSchema
from libs.tabular_utils.batching import Batch, iter_batches


@pytest.fixture
def schema():
    return InferredSchema(
        columns=[
            ColumnSpec(name="name", type=ColumnType.TEXT),
            ColumnSpec(name="amount", type=ColumnType.DECIMAL),
            ColumnSpec(name="day", type=ColumnType.DATE, date_format="%d/%m/%Y"),
        ]
    )


@pytest.fixture
def mock_database():
    """Database double: begin() is a working context manager."""
    return MagicMock()


def _batches(count, size=2):
    rows = [("row", str(i), "01/01/2024") for i in range(count * size)]
    return list(iter_batches(rows, size))


# =============================================================================
# Test: coercion
# =============================================================================

class TestCoerceValue:
    @pytest.mark.parametrize(
        "column_type,raw,expected",
        [
            (ColumnType.TEXT, " padded ", " padded "),
            (ColumnType.INTEGER, "42", 42),
            (ColumnType.DECIMAL, "20.5", Decimal("20.5")),
            (ColumnType.BOOLEAN, "Sí", True),
            (ColumnType.BOOLEAN, "no", False),
        ],
    )
    def test_converts_to_column_type(self, column_type, raw, expected):
        assert coerce_value(raw, ColumnSpec(name="c", type=column_type)) == expected

    def test_date_uses_column_format(self):
        column = ColumnSpec(name="d", type=ColumnType.DATE, date_format="%d/%m/%Y")
        assert coerce_value("02/01/2024", column) == date(2024, 1, 2)

    def test_date_without_format_tries_known_formats(self):
        column = ColumnSpec(name="d", type=ColumnType.DATE)
        assert coerce_value("2024-01-02", column) == date(2024, 1, 2)

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_is_null_for_every_type(self, raw):
        for column_type in ColumnType:
            assert coerce_value(raw, ColumnSpec(name="c", type=column_type)) is None

    def test_mismatch_raises_coercion_error(self):
        with pytest.raises(CoercionError, match="Column 'qty': cannot convert 'N/A' to integer"):
            coerce_value("N/A", ColumnSpec(name="qty", type=ColumnType.INTEGER))

    def test_coerce_row_pads_short_rows(self, schema):
        assert coerce_row(("A",), schema.columns) == {"name": "A", "amount": None, "day": None}


# =============================================================================
# Test: BulkLoader batch isolation
# =============================================================================

class TestBulkLoader:
    def test_all_batches_succeed(self, mock_database, schema):
        loader = BulkLoader(mock_database)
        progress = []

        result = loader.load(
            MagicMock(name="table"), schema, _batches(3), on_progress=lambda *args: progress.append(args)
        )

        assert result.rows_written == 6
        assert result.rows_failed == 0
        assert result.batches_total == 3
        assert result.batches_failed == 0
        assert mock_database.begin.call_count == 3
        assert progress == [(2, 0, 0), (4, 1, 0), (6, 2, 0)]

    def test_failed_middle_batch_is_recorded_and_load_continues(self, mock_database, schema):
        mock_database.insert_rows.side_effect = [
            None,
            IntegrityError("INSERT", {}, Exception("duplicate key")),
            None,
        ]
        progress = []

        result = BulkLoader(mock_database).load(
            MagicMock(name="table"), schema, _batches(3), on_progress=lambda *args: progress.append(args)
        )

        assert result.rows_written == 4
        assert result.rows_failed == 2
        assert result.batches_failed == 1
        assert result.batches_succeeded == 2
        assert result.errors[0].batch_index == 1
        assert result.errors[0].start_row == 3
        assert result.errors[0].row_count == 2
        assert result.errors[0].error_type == "BatchInsertError"
        assert progress[-1] == (4, 2, 2)

    def test_data_error_is_schema_mismatch(self, mock_database, schema):
        mock_database.insert_rows.side_effect = DataError("INSERT", {}, Exception("invalid input syntax"))

        result = BulkLoader(mock_database).load(MagicMock(name="table"), schema, _batches(1))

        assert result.errors[0].error_type == "SchemaMismatchError"
        assert result.rows_written == 0

    def test_uncoercible_row_fails_only_its_batch(self, mock_database, schema):
        batches = [
            Batch(index=0, start_row=1, rows=[("a", "1", "01/01/2024")]),
            Batch(index=1, start_row=2, rows=[("b", "not-a-number", "01/01/2024")]),
        ]

        result = BulkLoader(mock_database).load(MagicMock(name="table"), schema, batches)

        assert result.rows_written == 1
        assert result.rows_failed == 1
        assert "cannot convert 'not-a-number' to decimal" in result.errors[0].message
        assert mock_database.insert_rows.call_count == 1

    def test_database_outage_fails_batches_without_aborting(self, mock_database, schema):
        mock_database.begin.side_effect = OperationalError("connect", {}, Exception("connection refused"))

        result = BulkLoader(mock_database).load(MagicMock(name="table"), schema, _batches(2))

        assert result.batches_failed == 2
        assert result.rows_written == 0

    def test_row_source_error_propagates_with_partial_result(self, mock_database, schema):
        def batches():
            yield _batches(1)[0]
            raise RowSourceError("Row source failed: bad quote", row_number=3)

        loader = BulkLoader(mock_database)
        with pytest.raises(RowSourceError):
            loader.load(MagicMock(name="table"), schema, batches())

        assert loader.result.rows_written == 2

    def test_deadline_stops_before_next_batch(self, mock_database, schema):
        ticks = iter([0.0, 5.0, 20.0])
        loader = BulkLoader(mock_database, deadline=10.0, clock=lambda: next(ticks))

        with pytest.raises(JobTimeoutError, match="before batch 2"):
            loader.load(MagicMock(name="table"), schema, _batches(3))

        assert loader.result.rows_written == 4


# =============================================================================
# Test: BulkLoader against SQLite
# =============================================================================

def test_load_writes_rows(postgres_resource, sqlite_engine, schema):
    table = TableProvisioner(postgres_resource).ensure_table("ventas", schema)
    rows = [("A", "10", "01/01/2024"), ("B", "20.5", "02/01/2024"), ("C", "", "")]

    result = BulkLoader(postgres_resource).load(table, schema, iter_batches(rows, 2))

    assert result.rows_written == 3
    with sqlite_engine.connect() as conn:
        stored = conn.execute(select(table.c.name, table.c.day).order_by(table.c.name)).all()
    assert stored == [("A", date(2024, 1, 1)), ("B", date(2024, 1, 2)), ("C", None)]

"""
End-to-end tests for FileProcessor.

Runs the full download → parse → infer → provision → load flow against
an in-memory object store, SQLite and a mongomock status store.
"""

from unittest.mock import patch

import pytest
from openpyxl import Workbook
from sqlalchemy import text

from libs.ingestion.errors import BatchInsertError, InputError
from libs.ingestion.loader import BulkLoader
from libs.ingestion.processor import FileProcessor
from libs.models import IngestRequest, IngestSettings, JobStatus


SALES_CSV = b"Name,Amount,Date\nA,10,2024-01-01\nB,20.5,2024-01-02\n"


@pytest.fixture
def make_processor(object_store, postgres_resource, reporter):
    def _make(files, settings=None):
        object_store.files.update(files)
        return FileProcessor(
            object_store=object_store,
            database=postgres_resource,
            reporter=reporter,
            settings=settings or IngestSettings(batch_size=1, target_schema=None),
        )

    return _make


def _count(engine, table):
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()


# =============================================================================
# Test: input validation
# =============================================================================

class TestValidation:
    @pytest.mark.parametrize(
        "request_data",
        [
            {"key": "", "job_id": "job-1"},
            {"key": "a.csv", "job_id": "   "},
            {"job_id": "job-1"},
        ],
    )
    def test_invalid_input_raises_before_any_io(self, make_processor, reporter, request_data):
        processor = make_processor({})

        with pytest.raises(InputError):
            processor.process(request_data)

        assert processor.object_store.downloads == []
        assert reporter.get_status("job-1") is None

    def test_accepts_camel_case_keys(self):
        request = FileProcessor.validate_request(
            {"key": "a.csv", "jobId": "job-1", "tableName": "Ventas 2024"}
        )
        assert request.job_id == "job-1"
        assert FileProcessor.resolve_table_name(request) == "ventas_2024"

    def test_table_name_derived_from_key(self):
        request = IngestRequest(key="s3://uploads/2024/Ventas Marzo.xlsx", job_id="job-1")
        assert FileProcessor.resolve_table_name(request) == "ventas_marzo"


# =============================================================================
# Test: end-to-end
# =============================================================================

class TestProcess:
    def test_csv_end_to_end(self, make_processor, reporter, sqlite_engine):
        processor = make_processor({"2024/ventas.csv": SALES_CSV})

        result = processor.process({"key": "2024/ventas.csv", "job_id": "job-1"})

        assert result.status == JobStatus.COMPLETED
        assert result.table_name == "ventas"
        assert result.columns == {"name": "text", "amount": "decimal", "date": "date"}
        assert result.load.batches_total == 2
        assert result.load.rows_written == 2
        assert result.load.rows_failed == 0

        record = reporter.get_status("job-1")
        assert record.status == JobStatus.COMPLETED
        assert record.progress.rows_written == 2
        assert record.progress.rows_failed == 0
        assert record.progress.batches_completed == 2
        assert record.table_name == "ventas"
        assert record.file_key == "2024/ventas.csv"
        assert _count(sqlite_engine, "ventas") == 2

    def test_excel_end_to_end(self, make_processor, reporter, sqlite_engine, tmp_path):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(["Cliente", "Activo", "Monto"])
        sheet.append(["Ana", "sí", 100])
        sheet.append(["Luis", "no", 250])
        path = tmp_path / "clientes.xlsx"
        workbook.save(path)

        processor = make_processor({"uploads/Clientes.xlsx": path.read_bytes()})
        result = processor.process({"key": "uploads/Clientes.xlsx", "job_id": "job-x", "table_name": "clientes"})

        assert result.status == JobStatus.COMPLETED
        assert result.columns == {"cliente": "text", "activo": "boolean", "monto": "integer"}
        assert reporter.get_status("job-x").progress.total_rows == 2
        assert _count(sqlite_engine, "clientes") == 2

    def test_header_only_file_completes_with_no_rows(self, make_processor, reporter, sqlite_engine):
        processor = make_processor({"empty.csv": b"a,b\n"})

        result = processor.process({"key": "empty.csv", "job_id": "job-1"})

        assert result.status == JobStatus.COMPLETED
        assert result.load.rows_written == 0
        assert _count(sqlite_engine, "empty") == 0

    def test_missing_object_fails_job(self, make_processor, reporter):
        processor = make_processor({})

        result = processor.process({"key": "missing.csv", "job_id": "job-1"})

        assert result.status == JobStatus.FAILED
        assert result.error.startswith("SourceFetchError")
        record = reporter.get_status("job-1")
        assert record.status == JobStatus.FAILED
        assert "missing.csv" in record.error

    def test_unsupported_format_fails_job(self, make_processor, reporter):
        processor = make_processor({"notes.pdf": b"%PDF-1.4"})

        result = processor.process({"key": "notes.pdf", "job_id": "job-1"})

        assert result.status == JobStatus.FAILED
        assert "Unsupported file format" in reporter.get_status("job-1").error

    def test_partial_batch_failure_still_completes(self, make_processor, reporter):
        processor = make_processor({"data.csv": b"n\n1\n2\n3\n"})
        insert_batch = BulkLoader._insert_batch

        def fail_second_batch(loader, table, schema, batch):
            if batch.index == 1:
                raise BatchInsertError("Constraint violation: duplicate key")
            return insert_batch(loader, table, schema, batch)

        with patch.object(BulkLoader, "_insert_batch", fail_second_batch):
            result = processor.process({"key": "data.csv", "job_id": "job-1"})

        assert result.status == JobStatus.COMPLETED
        assert result.load.rows_written == 2
        assert result.load.rows_failed == 1
        record = reporter.get_status("job-1")
        assert record.status == JobStatus.COMPLETED
        assert record.progress.rows_failed == 1
        assert "1 rows in 1 failed batches" in record.message

    def test_all_batches_failing_fails_job(self, make_processor, reporter):
        processor = make_processor({"data.csv": b"n\n1\n2\n"})

        with patch.object(
            BulkLoader,
            "_insert_batch",
            side_effect=BatchInsertError("Insert failed: connection reset"),
        ):
            result = processor.process({"key": "data.csv", "job_id": "job-1"})

        assert result.status == JobStatus.FAILED
        assert result.load.batches_failed == 2
        record = reporter.get_status("job-1")
        assert record.status == JobStatus.FAILED
        assert record.error.startswith("All 2 batches failed")

    def test_unexpected_error_marks_job_failed_and_propagates(self, make_processor, reporter):
        processor = make_processor({"data.csv": b"n\n1\n"})

        with patch.object(BulkLoader, "load", side_effect=KeyError("boom")):
            with pytest.raises(KeyError):
                processor.process({"key": "data.csv", "job_id": "job-1"})

        record = reporter.get_status("job-1")
        assert record.status == JobStatus.FAILED
        assert record.error.startswith("Unexpected error")

    def test_temp_file_is_removed(self, make_processor, tmp_path):
        processor = make_processor({"2024/ventas.csv": SALES_CSV})

        with patch("libs.ingestion.processor.tempfile.NamedTemporaryFile") as named_temp:
            local = tmp_path / "download.csv"
            named_temp.return_value.name = str(local)
            processor.process({"key": "2024/ventas.csv", "job_id": "job-1"})

        assert not local.exists()

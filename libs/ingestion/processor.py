# =============================================================================
# File Processor - "process file" orchestration
# =============================================================================
# Download → parse → infer schema → provision table → batched load, with
# job status reported at every phase. Collaborators are injected so the whole
# flow runs without live services in tests.
# =============================================================================

import logging
import tempfile
import time
from itertools import chain, islice
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from libs.models import IngestRequest, IngestSettings, JobStatus, LoadResult, ProcessResult
from libs.s3_utils import derive_table_name, extract_s3_key, key_extension
from libs.tabular_utils import infer_schema, iter_batches, normalize_identifier, open_row_source

from .errors import IngestError, InputError, InvalidTransitionError, SourceFetchError
from .loader import BulkLoader
from .provisioner import TableProvisioner
from .reporter import JobStatusReporter

__all__ = ["FileProcessor"]

logger = logging.getLogger(__name__)


class FileProcessor:
    """
    Processes one uploaded file per ``process`` call.

    Args:
        object_store: Exposes ``stat_upload(key)`` and ``download_upload(key, local_path)``
        database: Exposes the PostgresResource database operations
        reporter: JobStatusReporter for lifecycle and progress writes
        settings: IngestSettings (batch size, sample size, deadline, schema)
        log: Logger (Dagster ``context.log`` or a stdlib logger)
    """

    def __init__(
        self,
        object_store,
        database,
        reporter: JobStatusReporter,
        settings: Optional[IngestSettings] = None,
        log=None,
    ):
        self.object_store = object_store
        self.database = database
        self.reporter = reporter
        self.settings = settings or IngestSettings()
        self.log = log or logger
        self._columns: Optional[Dict[str, str]] = None

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    @staticmethod
    def validate_request(request: Union[IngestRequest, Dict[str, Any]]) -> IngestRequest:
        """
        Validate trigger input before any I/O.

        Raises:
            InputError: If ``key`` or ``job_id`` is missing or blank
        """
        if isinstance(request, IngestRequest):
            return request
        try:
            return IngestRequest.model_validate(request)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise InputError(f"Invalid ingest request ({fields})") from e

    @staticmethod
    def resolve_table_name(request: IngestRequest) -> str:
        """
        Destination table for a request: the caller's name or one derived
        from the file name, normalized with the column identifier rules.

        Raises:
            InputError: If no usable table name can be derived
        """
        if request.table_name:
            name = normalize_identifier(request.table_name)
        else:
            try:
                name = derive_table_name(request.key)
            except ValueError as e:
                raise InputError(str(e)) from e
        if not name:
            raise InputError(f"Cannot derive a table name for '{request.key}'")
        return name

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _fetch(self, key: str, local_path: str):
        try:
            uploaded = self.object_store.stat_upload(key)
            self.log.info(f"Downloading {key} ({uploaded.size} bytes) to {local_path}")
            self.object_store.download_upload(key, local_path)
            return uploaded
        except Exception as e:
            raise SourceFetchError(f"Failed to fetch '{key}': {e}") from e

    def _load(self, job_id: str, key: str, table_name: str, local_path: str, loader: BulkLoader) -> LoadResult:
        uploaded = self._fetch(key, local_path)

        with open_row_source(local_path, uploaded.filename, csv_block_size=self.settings.csv_block_size) as source:
            rows = source.rows()
            sample = list(islice(rows, self.settings.sample_rows))
            schema = infer_schema(source.header, sample)
            self.log.info(f"Job {job_id}: inferred schema {schema.types}")
            self._columns = {name: column_type.value for name, column_type in schema.types.items()}

            self.reporter.start_processing(
                job_id,
                total_rows=source.total_rows,
                message=f"Inferred {len(schema)} columns, loading into {table_name}",
            )

            table = TableProvisioner(self.database, self.log).ensure_table(
                table_name, schema, db_schema=self.settings.target_schema
            )

            def on_progress(rows_written: int, batch_index: int, rows_failed: int) -> None:
                self.reporter.report_progress(
                    job_id,
                    rows_written=rows_written,
                    batches_completed=batch_index + 1,
                    rows_failed=rows_failed,
                )

            batches = iter_batches(chain(sample, rows), self.settings.batch_size)
            return loader.load(table, schema, batches, on_progress=on_progress)

    def _mark_failed(self, job_id: str, error: str) -> None:
        try:
            self.reporter.fail(job_id, error=error)
        except InvalidTransitionError as e:
            self.log.warning(f"Job {job_id} already finished, not marking failed: {e}")

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def process(self, request: Union[IngestRequest, Dict[str, Any]]) -> ProcessResult:
        """
        Run the full ingestion flow for one uploaded file.

        Fetch, parse, provisioning, row-source and timeout errors end the job
        as failed (rows committed before the error stay committed). Batch
        failures are absorbed; the job fails only when no batch succeeded.

        Raises:
            InputError: Invalid trigger input (no status is written)
        """
        request = self.validate_request(request)
        job_id = request.job_id
        try:
            key = extract_s3_key(request.key)
        except ValueError as e:
            raise InputError(str(e)) from e
        table_name = self.resolve_table_name(request)

        deadline = None
        if self.settings.deadline_seconds is not None:
            deadline = time.monotonic() + self.settings.deadline_seconds
        loader = BulkLoader(self.database, self.log, deadline=deadline)
        self._columns = None

        temp_file = tempfile.NamedTemporaryFile(delete=False, suffix=key_extension(key))
        local_path = temp_file.name
        temp_file.close()

        try:
            self.reporter.start_download(job_id, file_key=key, table_name=table_name)
            load = self._load(job_id, key, table_name, local_path, loader)

            if load.batches_total > 0 and load.batches_succeeded == 0:
                error = f"All {load.batches_total} batches failed: {load.summary()}"
                self.log.error(f"Job {job_id}: {error}")
                self._mark_failed(job_id, error)
                return ProcessResult(
                    job_id=job_id,
                    status=JobStatus.FAILED,
                    table_name=table_name,
                    columns=self._columns,
                    load=load,
                    error=error,
                )

            message = f"Loaded {load.rows_written} rows into {table_name}"
            if load.rows_failed:
                message += f"; {load.rows_failed} rows in {load.batches_failed} failed batches"
            self.reporter.complete(job_id, message=message)
            self.log.info(f"Job {job_id}: {message}")
            return ProcessResult(
                job_id=job_id,
                status=JobStatus.COMPLETED,
                table_name=table_name,
                columns=self._columns,
                load=load,
            )

        except IngestError as e:
            error = f"{type(e).__name__}: {e}"
            self.log.error(f"Job {job_id} failed: {error}")
            self._mark_failed(job_id, error)
            return ProcessResult(
                job_id=job_id,
                status=JobStatus.FAILED,
                table_name=table_name,
                columns=self._columns,
                load=loader.result,
                error=error,
            )

        except Exception as e:
            self._mark_failed(job_id, f"Unexpected error: {e}")
            raise

        finally:
            try:
                Path(local_path).unlink(missing_ok=True)
            except OSError as cleanup_error:
                self.log.warning(f"Failed to clean up temporary file: {cleanup_error}")
            self.reporter.flush()

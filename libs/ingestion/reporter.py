# =============================================================================
# Job Status Reporter
# =============================================================================
# Records job lifecycle transitions and progress counters in the status store
# read by the polling endpoint.
#
# Store failures never fail the file-processing run: a failed write is logged
# and retried once on a background thread, unless a newer write for the same
# job has been issued in the meantime.
# =============================================================================

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from libs.models import JobProgress, JobRecord, JobStatus, is_transition_allowed

from .errors import InvalidTransitionError, StatusStoreError

__all__ = ["JobStatusReporter"]

logger = logging.getLogger(__name__)


def _to_document(record: JobRecord) -> Dict[str, Any]:
    document = record.model_dump()
    document["status"] = record.status.value
    return document


class JobStatusReporter:
    """
    Writes job status records through a job store (see MongoJobStore).

    The reporter remembers the last record it wrote per job, so transition
    checks and progress merging do not need a store read for every batch.
    The first write for a job consults the store once.

    Args:
        store: Object exposing ``set(job_id, record, ttl_seconds)`` and ``get(job_id)``
        ttl_seconds: Retention window applied on every write
        log: Logger (Dagster ``context.log`` or a stdlib logger)
    """

    def __init__(self, store, ttl_seconds: int = 3600, log=None):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.log = log or logger
        self._records: Dict[str, JobRecord] = {}
        self._sequence: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: List[Future] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_status(self, job_id: str) -> Optional[JobRecord]:
        """
        Load the current record for ``job_id``.

        Returns:
            JobRecord, or None when the job is unknown or expired

        Raises:
            StatusStoreError: If the store cannot be read
        """
        document = self.store.get(job_id)
        if document is None:
            return None
        return JobRecord(**document)

    def _current(self, job_id: str) -> Optional[JobRecord]:
        if job_id in self._records:
            return self._records[job_id]
        try:
            return self.get_status(job_id)
        except StatusStoreError as e:
            self.log.warning(f"Could not read current status of job {job_id}: {e}")
            return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_status(
        self,
        job_id: str,
        status: JobStatus,
        *,
        progress: Optional[JobProgress] = None,
        message: Optional[str] = None,
        error: Optional[str] = None,
        file_key: Optional[str] = None,
        table_name: Optional[str] = None,
    ) -> JobRecord:
        """
        Move ``job_id`` to ``status`` and persist the merged record.

        Fields left as None keep their previous values; ``error`` is only
        kept on failed records.

        Raises:
            InvalidTransitionError: If the job is already terminal or the
                transition skips a lifecycle step
        """
        current = self._current(job_id)
        current_status = current.status if current else None
        if not is_transition_allowed(current_status, status):
            raise InvalidTransitionError(
                f"Job {job_id}: cannot move from {current_status.value} to {status.value}"
            )

        now = datetime.now(timezone.utc)
        if current is None:
            record = JobRecord(job_id=job_id, status=status, created_at=now, updated_at=now)
        else:
            record = current.model_copy(update={"status": status, "updated_at": now})

        updates: Dict[str, Any] = {}
        if progress is not None:
            updates["progress"] = progress
        if message is not None:
            updates["message"] = message
        if file_key is not None:
            updates["file_key"] = file_key
        if table_name is not None:
            updates["table_name"] = table_name
        updates["error"] = error if status == JobStatus.FAILED else None
        record = record.model_copy(update=updates)

        self._records[job_id] = record
        self._write(job_id, record)
        return record

    def _write(self, job_id: str, record: JobRecord) -> None:
        document = _to_document(record)
        with self._lock:
            sequence = self._sequence.get(job_id, 0) + 1
            self._sequence[job_id] = sequence
            try:
                self.store.set(job_id, document, self.ttl_seconds)
                return
            except StatusStoreError as e:
                self.log.warning(
                    f"Status write for job {job_id} ({record.status.value}) failed, "
                    f"retrying in background: {e}"
                )
        self._schedule_retry(job_id, sequence, document)

    def _schedule_retry(self, job_id: str, sequence: int, document: Dict[str, Any]) -> None:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="status-retry")
        self._pending.append(self._executor.submit(self._retry, job_id, sequence, document))

    def _retry(self, job_id: str, sequence: int, document: Dict[str, Any]) -> bool:
        with self._lock:
            if self._sequence.get(job_id) != sequence:
                self.log.info(f"Skipping status retry for job {job_id}: superseded by a newer write")
                return False
            try:
                self.store.set(job_id, document, self.ttl_seconds)
                return True
            except StatusStoreError as e:
                self.log.error(f"Dropping status write for job {job_id} after retry: {e}")
                return False

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for pending background retries."""
        pending, self._pending = self._pending, []
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    def queue(self, job_id: str, file_key: Optional[str] = None, table_name: Optional[str] = None) -> JobRecord:
        return self.set_status(
            job_id, JobStatus.QUEUED, file_key=file_key, table_name=table_name, message="Queued"
        )

    def start_download(self, job_id: str, file_key: Optional[str] = None, table_name: Optional[str] = None) -> JobRecord:
        return self.set_status(
            job_id,
            JobStatus.DOWNLOADING,
            file_key=file_key,
            table_name=table_name,
            message="Downloading file",
        )

    def start_processing(
        self,
        job_id: str,
        total_rows: Optional[int] = None,
        message: Optional[str] = None,
    ) -> JobRecord:
        return self.set_status(
            job_id,
            JobStatus.PROCESSING,
            progress=JobProgress(total_rows=total_rows),
            message=message or "Processing file",
        )

    def report_progress(
        self,
        job_id: str,
        rows_written: int,
        batches_completed: int,
        rows_failed: int = 0,
    ) -> JobRecord:
        """Record per-batch counters; ``total_rows`` is carried over."""
        current = self._records.get(job_id)
        total_rows = current.progress.total_rows if current else None
        return self.set_status(
            job_id,
            JobStatus.PROCESSING,
            progress=JobProgress(
                rows_written=rows_written,
                rows_failed=rows_failed,
                batches_completed=batches_completed,
                total_rows=total_rows,
            ),
            message=f"Processed {rows_written} rows (batch {batches_completed})",
        )

    def complete(self, job_id: str, message: Optional[str] = None) -> JobRecord:
        return self.set_status(job_id, JobStatus.COMPLETED, message=message or "Completed")

    def fail(self, job_id: str, error: str, message: Optional[str] = None) -> JobRecord:
        return self.set_status(job_id, JobStatus.FAILED, error=error, message=message or "Failed")

# =============================================================================
# Job Service - Ingest Job Status
# =============================================================================
# Reads and seeds ingest job status records shared with the worker.
# =============================================================================

import logging
from typing import Optional

from pymongo import MongoClient

from app.config import get_settings
from libs.ingestion.job_store import MongoJobStore
from libs.ingestion.reporter import JobStatusReporter
from libs.models import JobRecord

logger = logging.getLogger(__name__)


class JobService:
    """Job status operations for the webapp."""

    def __init__(self, client: Optional[MongoClient] = None) -> None:
        settings = get_settings()
        self._client = client or MongoClient(settings.mongo_connection_string)
        collection = self._client[settings.mongo_database][settings.mongo_jobs_collection]
        self.store = MongoJobStore(collection)
        self._ttl_seconds = settings.ingest_status_ttl_seconds

    def _reporter(self) -> JobStatusReporter:
        # One reporter per call: the worker writes the same records.
        return JobStatusReporter(self.store, ttl_seconds=self._ttl_seconds, log=logger)

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        """Current record for ``job_id`` (None when unknown or expired)."""
        return self._reporter().get_status(job_id)

    def queue_job(self, job_id: str, key: str, table_name: Optional[str] = None) -> JobRecord:
        reporter = self._reporter()
        try:
            return reporter.queue(job_id, file_key=key, table_name=table_name)
        finally:
            reporter.close()

    def fail_job(self, job_id: str, error: str) -> JobRecord:
        reporter = self._reporter()
        try:
            return reporter.fail(job_id, error=error, message="Failed to launch worker run")
        finally:
            reporter.close()

    def ping(self) -> bool:
        return self.store.ping()


# Singleton instance
_job_service: Optional[JobService] = None


def get_job_service() -> JobService:
    """Get or create the job service singleton."""
    global _job_service
    if _job_service is None:
        _job_service = JobService()
    return _job_service

"""MongoDB Resource - Job status store operations."""

from __future__ import annotations

import logging
from functools import cached_property
from typing import ClassVar, Dict

from dagster import ConfigurableResource
from pydantic import Field
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from libs.ingestion.errors import StatusStoreError
from libs.ingestion.job_store import MongoJobStore
from libs.ingestion.reporter import JobStatusReporter

__all__ = ["MongoDBResource"]

logger = logging.getLogger(__name__)


class MongoDBResource(ConfigurableResource):
    """
    Dagster resource for the job status store.

    Job status records live in one collection keyed by job id, with a TTL
    index so records expire after the retention window. All MongoDB
    interactions go through this resource so ops and sensors stay
    lightweight.
    """

    connection_string: str = Field(..., description="MongoDB connection URI")
    database: str = Field("file_ingest", description="MongoDB database name")
    status_ttl_seconds: int = Field(3600, ge=1, description="Job status retention window")

    JOBS: ClassVar[str] = "ingest_jobs"

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(self.connection_string)

    def _get_db(self) -> Database:
        return self._client[self.database]

    def _get_collection(self, name: str) -> Collection:
        return self._get_db()[name]

    @cached_property
    def _job_store(self) -> MongoJobStore:
        return MongoJobStore(self._get_collection(self.JOBS))

    @cached_property
    def _index_state(self) -> Dict[str, bool]:
        return {"ready": False}

    def get_job_store(self, log=None) -> MongoJobStore:
        """
        Job status store, with its indexes ensured on the first call that
        reaches MongoDB.

        An outage only logs a warning: status writes then go through the
        reporter's retry path, and index creation is tried again next call.
        """
        store = self._job_store
        if not self._index_state["ready"]:
            try:
                store.ensure_indexes()
                self._index_state["ready"] = True
            except StatusStoreError as e:
                (log or logger).warning(f"Job status indexes not ensured, continuing without them: {e}")
        return store

    def get_reporter(self, log=None) -> JobStatusReporter:
        """Status reporter writing through this resource's job store."""
        return JobStatusReporter(
            self.get_job_store(log),
            ttl_seconds=self.status_ttl_seconds,
            log=log,
        )

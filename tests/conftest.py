"""
Shared pytest fixtures for ingestion tests.

Provides in-memory stand-ins for the worker's external services:
mongomock for the job status store, SQLite for the destination database
and a local-file object store for uploads.
"""

from pathlib import Path
from typing import Dict

import mongomock
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from libs.ingestion.job_store import MongoJobStore
from libs.ingestion.reporter import JobStatusReporter
from libs.models import IngestSettings, UploadedFile
from libs.s3_utils import key_filename


# =============================================================================
# Object Store Fixtures
# =============================================================================

class FakeObjectStore:
    """Uploads held in memory, exposing the MinIOResource read interface."""

    def __init__(self, files: Dict[str, bytes] = None):
        self.files = dict(files or {})
        self.downloads = []

    def stat_upload(self, key: str) -> UploadedFile:
        if key not in self.files:
            raise RuntimeError(f"Object '{key}' not found in bucket 'uploads'")
        return UploadedFile(key=key, filename=key_filename(key), size=len(self.files[key]))

    def download_upload(self, key: str, local_path: str) -> None:
        self.downloads.append(key)
        Path(local_path).write_bytes(self.files[key])


@pytest.fixture
def object_store():
    return FakeObjectStore()


# =============================================================================
# Job Status Store Fixtures
# =============================================================================

@pytest.fixture
def mongomock_client():
    """In-memory MongoDB client for tests."""
    return mongomock.MongoClient()


@pytest.fixture
def jobs_collection(mongomock_client):
    return mongomock_client["file_ingest"]["ingest_jobs"]


@pytest.fixture
def job_store(jobs_collection):
    return MongoJobStore(jobs_collection)


@pytest.fixture
def reporter(job_store):
    status_reporter = JobStatusReporter(job_store, ttl_seconds=3600)
    yield status_reporter
    status_reporter.close()


# =============================================================================
# Destination Database Fixtures
# =============================================================================

@pytest.fixture
def sqlite_engine():
    """Single-connection in-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def postgres_resource(monkeypatch, sqlite_engine):
    """PostgresResource whose engine is the in-memory SQLite engine."""
    from services.dagster.etl_pipelines.resources import PostgresResource

    monkeypatch.setattr(
        "services.dagster.etl_pipelines.resources.postgres_resource.create_engine",
        lambda *args, **kwargs: sqlite_engine,
    )
    return PostgresResource(
        host="localhost",
        port=5432,
        user="test_user",
        password="test_password",
        database="test_db",
    )


@pytest.fixture
def ingest_settings():
    """Small batches, no target schema (SQLite has no "public" schema)."""
    return IngestSettings(batch_size=2, sample_rows=100, target_schema=None)

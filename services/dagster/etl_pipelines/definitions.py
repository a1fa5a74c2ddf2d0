"""Dagster Definitions - Repository Configuration.

Defines jobs, resources, and sensors for the file ingestion worker.
"""

from dagster import Definitions, EnvVar

from libs.models import IngestSettings

from .jobs import ingest_file_job
from .resources import MinIOResource, MongoDBResource, PostgresResource
from .sensors import ingest_run_failure_sensor


# =============================================================================
# Resources
# =============================================================================

def _mongodb_resource() -> MongoDBResource:
    """Job status store; retention follows INGEST_STATUS_TTL_SECONDS like the sensor."""
    return MongoDBResource(
        connection_string=EnvVar("MONGO_CONNECTION_STRING"),
        database="file_ingest",
        status_ttl_seconds=IngestSettings().status_ttl_seconds,
    )


# =============================================================================
# Definitions
# =============================================================================

defs = Definitions(
    jobs=[
        ingest_file_job,
    ],
    resources={
        "minio": MinIOResource(
            endpoint=EnvVar("MINIO_ENDPOINT"),
            access_key=EnvVar("MINIO_ROOT_USER"),
            secret_key=EnvVar("MINIO_ROOT_PASSWORD"),
            use_ssl=False,
            uploads_bucket="uploads",
        ),
        "mongodb": _mongodb_resource(),
        "postgres": PostgresResource(
            host=EnvVar("POSTGRES_HOST"),
            user=EnvVar("POSTGRES_USER"),
            password=EnvVar("POSTGRES_PASSWORD"),
            port=5432,
            database=EnvVar("POSTGRES_DB"),
        ),
    },
    schedules=[],
    sensors=[
        ingest_run_failure_sensor,  # Lifecycle: marks job failed on run failure
    ],
)

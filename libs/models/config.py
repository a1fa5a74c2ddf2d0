# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for all service configurations:
# - MinIOSettings: S3-compatible object storage holding uploaded files
# - MongoSettings: MongoDB job status store configuration
# - PostgresSettings: destination relational database configuration
# - IngestSettings: batching, sampling and retention knobs for the worker
# =============================================================================

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

__all__ = [
    "MinIOSettings",
    "MongoSettings",
    "PostgresSettings",
    "IngestSettings",
]


# =============================================================================
# MinIO Settings (S3-Compatible Object Storage)
# =============================================================================

class MinIOSettings(BaseSettings):
    """
    Configuration for MinIO (S3-compatible object storage).

    Maps environment variables with prefix "MINIO_":
    - MINIO_ENDPOINT → endpoint
    - MINIO_ROOT_USER → access_key
    - MINIO_ROOT_PASSWORD → secret_key
    - MINIO_USE_SSL → use_ssl
    - MINIO_UPLOADS_BUCKET → uploads_bucket

    Attributes:
        endpoint: MinIO server endpoint (host:port)
        access_key: Access key (maps from MINIO_ROOT_USER)
        secret_key: Secret key (maps from MINIO_ROOT_PASSWORD)
        use_ssl: Whether to use SSL/TLS (default: False)
        uploads_bucket: Bucket the uploader writes files into (default: "uploads")
    """

    endpoint: str = Field(..., validation_alias="MINIO_ENDPOINT", description="MinIO server endpoint (host:port)")
    access_key: str = Field(..., validation_alias="MINIO_ROOT_USER", description="Access key (maps from MINIO_ROOT_USER)")
    secret_key: str = Field(..., validation_alias="MINIO_ROOT_PASSWORD", description="Secret key (maps from MINIO_ROOT_PASSWORD)")
    use_ssl: bool = Field(False, validation_alias="MINIO_USE_SSL", description="Whether to use SSL/TLS")
    uploads_bucket: str = Field("uploads", validation_alias="MINIO_UPLOADS_BUCKET", description="Uploaded files bucket name")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )


# =============================================================================
# MongoDB Settings (Job Status Store)
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for MongoDB (job status store).

    Maps environment variables with prefix "MONGO_":
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_INITDB_ROOT_USERNAME → username
    - MONGO_INITDB_ROOT_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_AUTH_SOURCE → auth_source
    """

    host: str = Field("mongodb", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: str = Field(..., validation_alias="MONGO_INITDB_ROOT_USERNAME", description="MongoDB username")
    password: str = Field(..., validation_alias="MONGO_INITDB_ROOT_PASSWORD", description="MongoDB password")
    database: str = Field("file_ingest", validation_alias="MONGO_DATABASE", description="Database name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def connection_string(self) -> str:
        """
        Build MongoDB connection URI.

        Format: mongodb://[username]:[password]@[host]:[port]/[database]?authSource=[auth_source]
        """
        return (
            f"mongodb://{self.username}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?authSource={self.auth_source}"
        )


# =============================================================================
# Postgres Settings (Destination Database)
# =============================================================================

class PostgresSettings(BaseSettings):
    """
    Configuration for the destination PostgreSQL database.

    Uploaded files are loaded into tables in this database; the tables are
    read afterwards by the dashboard queries.

    Maps environment variables with prefix "POSTGRES_":
    - POSTGRES_HOST → host
    - POSTGRES_PORT → port
    - POSTGRES_USER → user
    - POSTGRES_PASSWORD → password
    - POSTGRES_DB → database
    """

    host: str = Field("postgres", validation_alias="POSTGRES_HOST", description="PostgreSQL host")
    port: int = Field(5432, validation_alias="POSTGRES_PORT", description="PostgreSQL port")
    user: str = Field(..., validation_alias="POSTGRES_USER", description="PostgreSQL user")
    password: str = Field(..., validation_alias="POSTGRES_PASSWORD", description="PostgreSQL password")
    database: str = Field("dashboard", validation_alias="POSTGRES_DB", description="Database name")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def connection_string(self) -> str:
        """
        Build SQLAlchemy connection URI (psycopg 3 driver).

        Format: postgresql+psycopg://[user]:[password]@[host]:[port]/[database]
        """
        return (
            f"postgresql+psycopg://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}"
        )


# =============================================================================
# Ingest Settings (Worker Behaviour)
# =============================================================================

class IngestSettings(BaseSettings):
    """
    Tuning knobs for the file ingestion worker.

    Maps environment variables with prefix "INGEST_":
    - INGEST_BATCH_SIZE → batch_size
    - INGEST_SAMPLE_ROWS → sample_rows
    - INGEST_STATUS_TTL_SECONDS → status_ttl_seconds
    - INGEST_DEADLINE_SECONDS → deadline_seconds
    - INGEST_CSV_BLOCK_SIZE → csv_block_size
    - INGEST_TARGET_SCHEMA → target_schema

    Attributes:
        batch_size: Rows per insert transaction (default: 500)
        sample_rows: Rows sampled from the top of the file for type inference
        status_ttl_seconds: Retention window of job status records
        deadline_seconds: Optional wall-clock budget per file; checked before each batch
        csv_block_size: Bytes read per CSV block (bounds parser memory)
        target_schema: Database schema for destination tables
    """

    batch_size: int = Field(500, ge=1, validation_alias="INGEST_BATCH_SIZE", description="Rows per insert batch")
    sample_rows: int = Field(1000, ge=1, validation_alias="INGEST_SAMPLE_ROWS", description="Rows sampled for type inference")
    status_ttl_seconds: int = Field(3600, ge=1, validation_alias="INGEST_STATUS_TTL_SECONDS", description="Job status retention window")
    deadline_seconds: Optional[float] = Field(None, gt=0, validation_alias="INGEST_DEADLINE_SECONDS", description="Per-file processing budget")
    csv_block_size: int = Field(1 << 20, ge=1024, validation_alias="INGEST_CSV_BLOCK_SIZE", description="CSV read block size in bytes")
    target_schema: Optional[str] = Field("public", validation_alias="INGEST_TARGET_SCHEMA", description="Destination database schema")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

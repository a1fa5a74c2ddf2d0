# =============================================================================
# MinIO Resource - S3-Compatible Object Storage Operations
# =============================================================================
# Provides read access to the uploads bucket the uploader writes files into.
# Used by the ingest op to stat and stream uploaded files to local disk.
# =============================================================================

from pathlib import Path

from dagster import ConfigurableResource
from minio import Minio
from minio.error import S3Error
from pydantic import Field

from libs.models import UploadedFile
from libs.s3_utils import key_filename


class MinIOResource(ConfigurableResource):
    """
    Dagster resource for MinIO (S3-compatible object storage) operations.

    Provides methods for:
    - Reading uploaded file metadata (size, content type)
    - Streaming uploaded files to a local path in fixed-size chunks

    Configuration matches MinIOSettings from libs.models.config.

    Attributes:
        endpoint: MinIO server endpoint (host:port)
        access_key: Access key for authentication
        secret_key: Secret key for authentication
        use_ssl: Whether to use SSL/TLS (default: False)
        uploads_bucket: Bucket holding uploaded files (default: "uploads")
    """

    endpoint: str = Field(..., description="MinIO server endpoint (host:port)")
    access_key: str = Field(..., description="Access key for authentication")
    secret_key: str = Field(..., description="Secret key for authentication")
    use_ssl: bool = Field(False, description="Whether to use SSL/TLS")
    uploads_bucket: str = Field("uploads", description="Uploaded files bucket name")

    def get_client(self) -> Minio:
        """
        Create a MinIO client instance.

        Returns:
            Configured Minio client
        """
        return Minio(
            self.endpoint,
            access_key=self.access_key,
            secret_key=self.secret_key,
            secure=self.use_ssl,
        )

    def stat_upload(self, key: str) -> UploadedFile:
        """
        Read metadata of an uploaded file.

        Args:
            key: Object key in the uploads bucket (e.g., "2024/ventas.csv")

        Returns:
            UploadedFile with filename, content type and size

        Raises:
            RuntimeError: If the object does not exist
            S3Error: For other storage errors
        """
        client = self.get_client()

        try:
            stat = client.stat_object(self.uploads_bucket, key)
        except S3Error as exc:
            if exc.code in ("NoSuchKey", "NoSuchObject"):
                raise RuntimeError(
                    f"Object '{key}' not found in bucket '{self.uploads_bucket}'"
                ) from exc
            if exc.code == "NoSuchBucket":
                raise RuntimeError(
                    f"Uploads bucket '{self.uploads_bucket}' does not exist"
                ) from exc
            raise

        return UploadedFile(
            key=key,
            filename=key_filename(key),
            content_type=stat.content_type,
            size=stat.size,
        )

    def download_upload(self, key: str, local_path: str) -> None:
        """
        Download an uploaded file to a local path.

        The object is streamed in 32 KiB chunks so memory use does not grow
        with file size.

        Args:
            key: Object key in the uploads bucket
            local_path: Local file path to write to

        Raises:
            RuntimeError: If the object does not exist
            S3Error: For other storage errors
        """
        client = self.get_client()

        try:
            local_file = Path(local_path)
            local_file.parent.mkdir(parents=True, exist_ok=True)

            response = client.get_object(self.uploads_bucket, key)
            try:
                with open(local_path, "wb") as f:
                    for chunk in response.stream(32 * 1024):  # 32KB chunks
                        f.write(chunk)
            finally:
                response.close()
                response.release_conn()

        except S3Error as exc:
            if exc.code == "NoSuchKey":
                raise RuntimeError(
                    f"Object '{key}' not found in bucket '{self.uploads_bucket}'"
                ) from exc
            raise

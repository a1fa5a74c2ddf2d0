"""
Unit tests for MinIOResource.

Tests all methods with mocked minio.Minio client to avoid network calls.
"""

from unittest.mock import Mock, patch

import pytest
from minio.error import S3Error

from services.dagster.etl_pipelines.resources import MinIOResource


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def minio_resource():
    """Create a MinIOResource instance with test configuration."""
    return MinIOResource(
        endpoint="localhost:9000",
        access_key="test_access",
        secret_key="test_secret",
        use_ssl=False,
        uploads_bucket="test-uploads",
    )


MINIO_CLASS = "services.dagster.etl_pipelines.resources.minio_resource.Minio"


def _s3_error(code: str, resource: str) -> S3Error:
    return S3Error(
        code=code,
        message="The specified resource does not exist",
        resource=resource,
        request_id="test",
        host_id="test",
        response=Mock(status=404),
    )


# =============================================================================
# Test: get_client
# =============================================================================


def test_get_client(minio_resource):
    """Test that get_client creates a properly configured Minio client."""
    with patch(
        "services.dagster.etl_pipelines.resources.minio_resource.Minio"
    ) as mock_minio:
        minio_resource.get_client()

        mock_minio.assert_called_once_with(
            "localhost:9000",
            access_key="test_access",
            secret_key="test_secret",
            secure=False,
        )


# =============================================================================
# Test: stat_upload
# =============================================================================


def test_stat_upload_returns_uploaded_file(minio_resource):
    with patch(MINIO_CLASS) as mock_minio:
        mock_client = Mock()
        mock_client.stat_object.return_value = Mock(content_type="text/csv", size=2048)
        mock_minio.return_value = mock_client

        uploaded = minio_resource.stat_upload("2024/ventas.csv")

    mock_client.stat_object.assert_called_once_with("test-uploads", "2024/ventas.csv")
    assert uploaded.key == "2024/ventas.csv"
    assert uploaded.filename == "ventas.csv"
    assert uploaded.content_type == "text/csv"
    assert uploaded.size == 2048


@pytest.mark.parametrize(
    "code,message",
    [
        ("NoSuchKey", "Object 'missing.csv' not found in bucket 'test-uploads'"),
        ("NoSuchBucket", "Uploads bucket 'test-uploads' does not exist"),
    ],
)
def test_stat_upload_missing_raises_runtime_error(minio_resource, code, message):
    with patch(MINIO_CLASS) as mock_minio:
        mock_client = Mock()
        mock_client.stat_object.side_effect = _s3_error(code, "missing.csv")
        mock_minio.return_value = mock_client

        with pytest.raises(RuntimeError) as exc_info:
            minio_resource.stat_upload("missing.csv")

    assert str(exc_info.value) == message


def test_stat_upload_other_errors_propagate(minio_resource):
    with patch(MINIO_CLASS) as mock_minio:
        mock_client = Mock()
        mock_client.stat_object.side_effect = _s3_error("AccessDenied", "secret.csv")
        mock_minio.return_value = mock_client

        with pytest.raises(S3Error):
            minio_resource.stat_upload("secret.csv")


# =============================================================================
# Test: download_upload
# =============================================================================


def test_download_upload_streams_to_local_path(minio_resource, tmp_path):
    local_path = tmp_path / "nested" / "ventas.csv"

    with patch(MINIO_CLASS) as mock_minio:
        mock_client = Mock()
        mock_response = Mock()
        mock_response.stream.return_value = [b"Name,Amount\n", b"A,10\n"]
        mock_client.get_object.return_value = mock_response
        mock_minio.return_value = mock_client

        minio_resource.download_upload("2024/ventas.csv", str(local_path))

    mock_client.get_object.assert_called_once_with("test-uploads", "2024/ventas.csv")
    mock_response.stream.assert_called_once_with(32 * 1024)
    mock_response.close.assert_called_once()
    mock_response.release_conn.assert_called_once()
    assert local_path.read_bytes() == b"Name,Amount\nA,10\n"


def test_download_upload_releases_connection_on_error(minio_resource, tmp_path):
    with patch(MINIO_CLASS) as mock_minio:
        mock_client = Mock()
        mock_response = Mock()
        mock_response.stream.side_effect = ConnectionResetError("reset")
        mock_client.get_object.return_value = mock_response
        mock_minio.return_value = mock_client

        with pytest.raises(ConnectionResetError):
            minio_resource.download_upload("ventas.csv", str(tmp_path / "ventas.csv"))

    mock_response.release_conn.assert_called_once()


def test_download_upload_missing_key(minio_resource, tmp_path):
    with patch(MINIO_CLASS) as mock_minio:
        mock_client = Mock()
        mock_client.get_object.side_effect = _s3_error("NoSuchKey", "missing.csv")
        mock_minio.return_value = mock_client

        with pytest.raises(RuntimeError, match="not found in bucket 'test-uploads'"):
            minio_resource.download_upload("missing.csv", str(tmp_path / "missing.csv"))

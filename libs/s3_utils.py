# =============================================================================
# S3 Path Utilities
# =============================================================================
# Shared utilities for parsing S3 paths and deriving names from object keys.
# Used by the ingestion worker and the webapp trigger endpoint.
# =============================================================================

"""
S3 path utilities for the ingestion worker.

This module provides functions for:
- Parsing S3 paths into bucket and key components
- Extracting keys from S3 paths
- Deriving file names, extensions and destination table names from keys
"""

import posixpath
from typing import Tuple

from libs.tabular_utils.headers import normalize_identifier

__all__ = [
    "parse_s3_path",
    "extract_s3_key",
    "key_filename",
    "key_extension",
    "derive_table_name",
]


def parse_s3_path(s3_path: str) -> Tuple[str, str]:
    """
    Parse S3 path into bucket and key components.

    Args:
        s3_path: Full S3 path (e.g., "s3://uploads/2024/ventas.csv")

    Returns:
        Tuple of (bucket, key) e.g., ("uploads", "2024/ventas.csv")

    Raises:
        ValueError: If path is not valid s3:// format or missing key

    Examples:
        >>> parse_s3_path("s3://uploads/2024/ventas.csv")
        ('uploads', '2024/ventas.csv')
    """
    if not s3_path.startswith("s3://"):
        raise ValueError(
            f"Invalid S3 path format: '{s3_path}'. Must start with 's3://'"
        )

    path_without_prefix = s3_path[5:]  # Remove "s3://"
    parts = path_without_prefix.split("/", 1)

    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(
            f"Invalid S3 path format: '{s3_path}'. Expected 's3://bucket/key'"
        )

    return parts[0], parts[1]


def extract_s3_key(s3_path: str) -> str:
    """
    Extract the key portion from an S3 path.

    For paths that are already keys (not s3:// format), returns them unchanged.

    Examples:
        >>> extract_s3_key("s3://uploads/2024/ventas.csv")
        '2024/ventas.csv'
        >>> extract_s3_key("2024/ventas.csv")
        '2024/ventas.csv'
    """
    if s3_path.startswith("s3://"):
        _, key = parse_s3_path(s3_path)
        return key
    return s3_path


def key_filename(key: str) -> str:
    """
    Return the basename of an object key.

    Examples:
        >>> key_filename("2024/03/Ventas Marzo.xlsx")
        'Ventas Marzo.xlsx'
    """
    return posixpath.basename(extract_s3_key(key).rstrip("/"))


def key_extension(key: str) -> str:
    """
    Return the lower-cased extension of an object key, including the dot.

    Examples:
        >>> key_extension("uploads/DATA.CSV")
        '.csv'
        >>> key_extension("uploads/README")
        ''
    """
    return posixpath.splitext(key_filename(key))[1].lower()


def derive_table_name(key: str) -> str:
    """
    Derive a destination table name from an uploaded file's key.

    The basename without extension is normalized with the same identifier
    rules as column headers.

    Raises:
        ValueError: If the key has no file name component

    Examples:
        >>> derive_table_name("uploads/2024/Ventas Marzo.xlsx")
        'ventas_marzo'
        >>> derive_table_name("s3://uploads/2024-03 report.csv")
        '_2024_03_report'
    """
    filename = key_filename(key)
    if not filename:
        raise ValueError(f"Cannot derive table name from key: '{key}'")
    stem = posixpath.splitext(filename)[0]
    return normalize_identifier(stem, fallback="upload")

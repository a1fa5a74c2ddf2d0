"""Dagster Resources - External Service Connections."""

from .minio_resource import MinIOResource
from .mongodb_resource import MongoDBResource
from .postgres_resource import PostgresResource

__all__ = [
    "MinIOResource",
    "MongoDBResource",
    "PostgresResource",
]

# =============================================================================
# Job Status Store - MongoDB
# =============================================================================
# Key → record store for job status with a retention window. Documents carry
# an ``expires_at`` timestamp backed by a MongoDB TTL index; reads treat
# documents past that timestamp as gone even before the TTL monitor runs.
# =============================================================================

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .errors import StatusStoreError

__all__ = ["MongoJobStore"]


def _as_utc(value: datetime) -> datetime:
    # pymongo returns naive datetimes (UTC) unless tz_aware=True
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MongoJobStore:
    """
    Job status records in a MongoDB collection, one document per job id.

    Writes are whole-record upserts (last write wins).
    """

    INTERNAL_FIELDS = ("_id", "expires_at")

    def __init__(self, collection: Collection):
        self.collection = collection

    def ensure_indexes(self) -> None:
        """Create the unique job id index and the TTL index on ``expires_at``."""
        try:
            self.collection.create_index([("job_id", ASCENDING)], unique=True, name="job_id_unique")
            self.collection.create_index(
                [("expires_at", ASCENDING)], expireAfterSeconds=0, name="expires_at_ttl"
            )
        except PyMongoError as e:
            raise StatusStoreError(f"Failed to create job status indexes: {e}") from e

    def set(self, job_id: str, record: Dict[str, Any], ttl_seconds: int) -> None:
        """
        Replace the record for ``job_id`` and restart its retention window.

        Raises:
            StatusStoreError: If the write fails
        """
        document = dict(record)
        document["job_id"] = job_id
        document["expires_at"] = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        try:
            self.collection.replace_one({"job_id": job_id}, document, upsert=True)
        except PyMongoError as e:
            raise StatusStoreError(f"Failed to write status for job {job_id}: {e}") from e

    def get(self, job_id: str) -> Optional[Dict[str, Any]]:
        """
        Load the record for ``job_id``.

        Returns:
            The record without store bookkeeping fields, or None when the job
            is unknown or its retention window has passed

        Raises:
            StatusStoreError: If the read fails
        """
        try:
            document = self.collection.find_one({"job_id": job_id})
        except PyMongoError as e:
            raise StatusStoreError(f"Failed to read status for job {job_id}: {e}") from e

        if not document:
            return None

        expires_at = document.get("expires_at")
        if expires_at is not None and _as_utc(expires_at) <= datetime.now(timezone.utc):
            return None

        return {k: v for k, v in document.items() if k not in self.INTERNAL_FIELDS}

    def ping(self) -> bool:
        try:
            self.collection.database.client.admin.command("ping")
            return True
        except PyMongoError:
            return False

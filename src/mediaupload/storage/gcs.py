"""Google Cloud Storage backend."""

import asyncio
import logging
from typing import Optional

from google.api_core.exceptions import GoogleAPIError, NotFound, PreconditionFailed
from google.cloud import storage

from mediaupload.core.config import settings
from mediaupload.core.exceptions import ObjectNotFoundError, StorageError
from mediaupload.storage.base import StorageBackend, StoredObject

logger = logging.getLogger(__name__)


class GCSStorageBackend(StorageBackend):
    """Google Cloud Storage backend.

    The client library is blocking, so every call runs in a worker thread.
    """

    def __init__(self, project_id: str | None = None):
        self._project_id = project_id
        self._client: Optional[storage.Client] = None

    def _get_client(self) -> storage.Client:
        """Lazy-load and cache the GCS client."""
        if self._client is None:
            self._client = storage.Client(project=self._project_id or settings.GCP_PROJECT_ID or None)
        return self._client

    async def get(self, bucket: str, key: str) -> bytes:
        blob = self._get_client().bucket(bucket).blob(key)
        try:
            return await asyncio.to_thread(blob.download_as_bytes)
        except NotFound as e:
            raise ObjectNotFoundError(bucket, key) from e
        except GoogleAPIError as e:
            raise StorageError(f"Failed to download gs://{bucket}/{key}: {e}") from e

    async def put(
        self, bucket: str, key: str, data: bytes, content_type: str, upsert: bool = True
    ) -> None:
        blob = self._get_client().bucket(bucket).blob(key)
        kwargs = {} if upsert else {"if_generation_match": 0}
        try:
            await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type, **kwargs)
        except PreconditionFailed as e:
            raise StorageError(f"Object already exists: gs://{bucket}/{key}") from e
        except GoogleAPIError as e:
            raise StorageError(f"Failed to upload gs://{bucket}/{key}: {e}") from e

    async def remove_many(self, bucket: str, keys: list[str]) -> None:
        if not keys:
            return
        gcs_bucket = self._get_client().bucket(bucket)
        blobs = [gcs_bucket.blob(key) for key in keys]
        try:
            # on_error swallows NotFound for blobs that are already gone
            await asyncio.to_thread(gcs_bucket.delete_blobs, blobs, on_error=lambda blob: None)
        except GoogleAPIError as e:
            raise StorageError(f"Failed to delete {len(keys)} object(s) from gs://{bucket}: {e}") from e

    def public_url(self, bucket: str, key: str) -> str:
        return self._get_client().bucket(bucket).blob(key).public_url

    async def list_objects(self, bucket: str, prefix: str) -> list[StoredObject]:
        prefix = prefix.strip("/") + "/"

        def _list() -> list[StoredObject]:
            blobs = self._get_client().list_blobs(bucket, prefix=prefix, delimiter="/")
            return [StoredObject(key=blob.name, size=blob.size or 0) for blob in blobs]

        try:
            return await asyncio.to_thread(_list)
        except NotFound:
            return []
        except GoogleAPIError as e:
            raise StorageError(f"Failed to list gs://{bucket}/{prefix}: {e}") from e

    def get_backend_name(self) -> str:
        return "gcs"


# Singleton instance
gcs_backend = GCSStorageBackend()

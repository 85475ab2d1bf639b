"""Abstract object storage interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class StoredObject:
    """An object listed under a prefix."""

    key: str
    size: int


class StorageBackend(ABC):
    """Object storage capability used by the chunk merger.

    Implementations must treat deletion of keys that do not exist as success
    and ``put`` with ``upsert=True`` as an overwrite.
    """

    @abstractmethod
    async def get(self, bucket: str, key: str) -> bytes:
        """Download an object fully into memory.

        Args:
            bucket: Bucket name
            key: Object key inside the bucket

        Returns:
            Object content

        Raises:
            ObjectNotFoundError: If the object does not exist
            StorageError: If the download fails
        """
        pass

    @abstractmethod
    async def put(
        self, bucket: str, key: str, data: bytes, content_type: str, upsert: bool = True
    ) -> None:
        """Upload an object.

        Args:
            bucket: Bucket name
            key: Object key inside the bucket
            data: Object content
            content_type: MIME type stored with the object
            upsert: Overwrite an existing object instead of failing

        Raises:
            StorageError: If the upload fails
        """
        pass

    @abstractmethod
    async def remove_many(self, bucket: str, keys: list[str]) -> None:
        """Delete several objects in one call. Missing keys are ignored.

        Raises:
            StorageError: If the delete request itself fails
        """
        pass

    @abstractmethod
    def public_url(self, bucket: str, key: str) -> str:
        """Durable URL of an object."""
        pass

    @abstractmethod
    async def list_objects(self, bucket: str, prefix: str) -> list[StoredObject]:
        """List objects directly under ``prefix`` (a folder-like key without trailing slash).

        A prefix with no objects yields an empty list.
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass

    async def close(self) -> None:
        """Release network resources held by the backend."""
        return None

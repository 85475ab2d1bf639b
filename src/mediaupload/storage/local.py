"""Local filesystem storage backend."""

import asyncio
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

from mediaupload.core.config import settings
from mediaupload.core.exceptions import ObjectNotFoundError, StorageError
from mediaupload.storage.base import StorageBackend, StoredObject


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend.

    Buckets are directories under ``base_path`` and keys are relative paths
    inside them.
    """

    def __init__(self, base_path: str | Path | None = None, public_base_url: str | None = None):
        self._base_path = Path(base_path) if base_path is not None else None
        self._public_base_url = public_base_url

    @property
    def base_path(self) -> Path:
        return self._base_path if self._base_path is not None else Path(settings.LOCAL_STORAGE_PATH)

    def _object_path(self, bucket: str, key: str) -> Path:
        bucket_root = (self.base_path / bucket).resolve()
        path = (bucket_root / key).resolve()
        if bucket_root not in path.parents:
            raise StorageError(f"Key escapes bucket directory: {key!r}")
        return path

    async def get(self, bucket: str, key: str) -> bytes:
        path = self._object_path(bucket, key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError) as e:
            raise ObjectNotFoundError(bucket, key) from e
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    async def put(
        self, bucket: str, key: str, data: bytes, content_type: str, upsert: bool = True
    ) -> None:
        path = self._object_path(bucket, key)

        def _write() -> None:
            if not upsert and path.exists():
                raise StorageError(f"Object already exists: {bucket}/{key}")
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write beside the target and rename so readers never see a partial object
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

        try:
            await asyncio.to_thread(_write)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    async def remove_many(self, bucket: str, keys: list[str]) -> None:
        paths = [self._object_path(bucket, key) for key in keys]
        bucket_root = (self.base_path / bucket).resolve()

        def _remove() -> None:
            parents = set()
            for path in paths:
                path.unlink(missing_ok=True)
                parents.add(path.parent)
            # Drop folders left empty, e.g. temp/chunks/{file_id}
            for parent in sorted(parents, key=lambda p: len(p.parts), reverse=True):
                while parent != bucket_root and parent.is_dir() and not any(parent.iterdir()):
                    parent.rmdir()
                    parent = parent.parent

        try:
            await asyncio.to_thread(_remove)
        except OSError as e:
            raise StorageError(f"Failed to delete objects from {bucket}: {e}") from e

    def public_url(self, bucket: str, key: str) -> str:
        base = self._public_base_url if self._public_base_url is not None else settings.LOCAL_PUBLIC_BASE_URL
        return f"{base.rstrip('/')}/{bucket}/{quote(key, safe='/')}"

    async def list_objects(self, bucket: str, prefix: str) -> list[StoredObject]:
        prefix = prefix.strip("/")
        folder = self._object_path(bucket, prefix)

        def _list() -> list[StoredObject]:
            if not folder.is_dir():
                return []
            return [
                StoredObject(key=f"{prefix}/{entry.name}", size=entry.stat().st_size)
                for entry in sorted(folder.iterdir())
                if entry.is_file() and not entry.name.startswith(".")
            ]

        return await asyncio.to_thread(_list)

    def get_backend_name(self) -> str:
        return "local"


# Singleton instance
local_backend = LocalStorageBackend()

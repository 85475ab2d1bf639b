"""Storage backend selection."""

from mediaupload.core.config import settings
from mediaupload.core.exceptions import ConfigurationError
from mediaupload.storage.base import StorageBackend
from mediaupload.storage.gcs import gcs_backend
from mediaupload.storage.local import local_backend
from mediaupload.storage.supabase import supabase_backend


def get_storage_backend() -> StorageBackend:
    """Return the backend selected by STORAGE_BACKEND.

    Raises:
        ConfigurationError: If STORAGE_BACKEND names an unknown backend
    """
    backend = settings.STORAGE_BACKEND.strip().lower()
    if backend == "supabase":
        return supabase_backend
    if backend == "gcs":
        return gcs_backend
    if backend == "local":
        return local_backend
    raise ConfigurationError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND!r}")

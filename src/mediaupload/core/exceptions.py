"""Custom exceptions for MediaUpload Engine."""


class MediaUploadError(Exception):
    """Base exception for upload coordination failures."""

    code = "internal_error"
    status_code = 500


class InvalidRequestError(MediaUploadError):
    """Raised when caller input is missing or malformed."""

    code = "invalid_request"
    status_code = 400


class ConfigurationError(MediaUploadError):
    """Raised when signing credentials or the storage endpoint are not configured."""

    code = "configuration_error"


class SigningError(MediaUploadError):
    """Raised when a step of the request-signing pipeline cannot complete."""

    code = "signing_error"


class StorageError(MediaUploadError):
    """Raised when an object storage operation fails."""

    code = "storage_error"


class ObjectNotFoundError(StorageError):
    """Raised when a requested object does not exist."""

    code = "object_not_found"

    def __init__(self, bucket: str, key: str):
        self.bucket = bucket
        self.key = key
        super().__init__(f"Object not found: {bucket}/{key}")


class ChunkMissingError(MediaUploadError):
    """Raised when a chunk has not been uploaded (or cannot be read) at merge time."""

    code = "chunk_missing"

    def __init__(self, chunk_index: int, key: str, reason: str | None = None):
        self.chunk_index = chunk_index
        self.key = key
        self.reason = reason
        message = f"Chunk {chunk_index} is missing or unreadable: {key}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UploadError(MediaUploadError):
    """Raised when the merged object cannot be written. Chunks are kept for a retry."""

    code = "upload_failed"


class CleanupWarning(MediaUploadError):
    """Non-fatal failure to delete temporary chunks after a successful merge."""

    code = "cleanup_failed"

    def __init__(self, keys: list[str], reason: str):
        self.keys = keys
        self.reason = reason
        super().__init__(f"Failed to delete {len(keys)} temporary chunk(s): {reason}")

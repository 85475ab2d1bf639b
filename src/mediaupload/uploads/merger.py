"""Chunk merging: reassemble uploaded chunks into the final object.

A merge runs through Downloading -> Assembling -> Uploading -> Cleaning ->
Done. A missing chunk stops it before anything is written; a failed upload
stops it with every chunk still in place so the merge can simply be called
again; a failed cleanup is only a warning because the final object is
already usable.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from mediaupload.core.config import settings
from mediaupload.core.exceptions import (
    ChunkMissingError,
    CleanupWarning,
    InvalidRequestError,
    ObjectNotFoundError,
    StorageError,
    UploadError,
)
from mediaupload.storage.base import StorageBackend
from mediaupload.uploads.paths import (
    chunk_key,
    chunk_keys,
    chunk_prefix,
    content_type_for_category,
    is_session_key,
)

logger = logging.getLogger(__name__)


class MergeState(str, Enum):
    """Merge lifecycle states."""

    DOWNLOADING = "downloading"
    ASSEMBLING = "assembling"
    UPLOADING = "uploading"
    CLEANING = "cleaning"
    DONE = "done"
    DONE_WITH_WARNING = "done_with_warning"
    FAILED = "failed"


@dataclass
class MergeResult:
    """Outcome of a successful merge."""

    file_id: str
    bucket: str
    final_path: str
    public_url: str
    content_type: str
    total_chunks: int
    size_bytes: int
    state: MergeState = MergeState.DONE
    cleanup_warning: Optional[CleanupWarning] = None


def assemble_chunks(chunks: list[bytes]) -> bytes:
    """Concatenate chunks into one immutable buffer of the exact final size.

    ``bytes.join`` sizes the result from the chunk lengths, allocates it once
    and copies each chunk at its offset, so the buffer goes to storage as is.
    """
    return b"".join(chunks)


class ChunkMerger:
    """Merge the chunks of one bucket into final objects.

    The media and document flows are the same routine with a different
    bucket and content-type policy.
    """

    def __init__(
        self,
        storage: StorageBackend,
        bucket: str,
        content_type_policy: Callable[[str | None], str] = content_type_for_category,
        max_concurrency: int | None = None,
    ):
        self.storage = storage
        self.bucket = bucket
        self.content_type_policy = content_type_policy
        self.max_concurrency = max(1, max_concurrency or settings.MERGE_DOWNLOAD_CONCURRENCY)

    async def merge_chunks(
        self,
        file_id: str,
        total_chunks: int,
        final_path: str,
        file_category: str | None = None,
    ) -> MergeResult:
        """Merge ``total_chunks`` chunks of ``file_id`` into ``final_path``.

        Args:
            file_id: Upload session id
            total_chunks: Number of chunks to merge
            final_path: Destination key of the merged object
            file_category: Declared category ("image", "video", "document", ...)

        Returns:
            MergeResult describing the merged object

        Raises:
            ChunkMissingError: If a chunk is absent or unreadable; nothing is uploaded
            InvalidRequestError: If ``final_path`` lies inside the session's chunk folder
            UploadError: If the merged object cannot be written; chunks are kept
        """
        if is_session_key(file_id, final_path):
            raise InvalidRequestError(
                f"finalPath must not be inside the temporary chunk folder {chunk_prefix(file_id)}/"
            )

        log_extra = {
            "file_id": file_id,
            "bucket": self.bucket,
            "total_chunks": total_chunks,
            "final_path": final_path,
        }
        logger.info("Starting chunk merge", extra={**log_extra, "state": MergeState.DOWNLOADING.value})

        chunks = await self._download_chunks(file_id, total_chunks)

        logger.debug("Assembling chunks", extra={**log_extra, "state": MergeState.ASSEMBLING.value})
        merged = assemble_chunks(chunks)
        del chunks
        size_bytes = len(merged)

        content_type = self.content_type_policy(file_category)
        logger.info(
            "Uploading merged file",
            extra={
                **log_extra,
                "state": MergeState.UPLOADING.value,
                "size_bytes": size_bytes,
                "content_type": content_type,
            },
        )
        try:
            await self.storage.put(self.bucket, final_path, merged, content_type, upsert=True)
        except StorageError as e:
            logger.error(
                "Failed to upload merged file, chunks kept for retry",
                extra={**log_extra, "state": MergeState.FAILED.value, "error": str(e)},
            )
            raise UploadError(f"Failed to upload merged file to {final_path}: {e}") from e

        result = MergeResult(
            file_id=file_id,
            bucket=self.bucket,
            final_path=final_path,
            public_url=self.storage.public_url(self.bucket, final_path),
            content_type=content_type,
            total_chunks=total_chunks,
            size_bytes=size_bytes,
        )

        result.cleanup_warning = await self._cleanup(file_id, total_chunks, log_extra)
        if result.cleanup_warning is not None:
            result.state = MergeState.DONE_WITH_WARNING

        logger.info(
            "Chunk merge completed",
            extra={**log_extra, "state": result.state.value, "public_url": result.public_url},
        )
        return result

    async def _download_chunks(self, file_id: str, total_chunks: int) -> list[bytes]:
        """Download every chunk, at most ``max_concurrency`` at a time, ordered by index."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _download(index: int) -> bytes:
            async with semaphore:
                data = await self.storage.get(self.bucket, chunk_key(file_id, index))
            logger.debug(
                f"Downloaded chunk {index + 1}/{total_chunks}",
                extra={"file_id": file_id, "chunk_index": index, "size_bytes": len(data)},
            )
            return data

        results = await asyncio.gather(
            *(_download(i) for i in range(total_chunks)), return_exceptions=True
        )

        chunks: list[bytes] = []
        for index, result in enumerate(results):
            if isinstance(result, ObjectNotFoundError):
                self._log_missing(file_id, index, "not found")
                raise ChunkMissingError(index, chunk_key(file_id, index), "not found") from result
            if isinstance(result, StorageError):
                self._log_missing(file_id, index, str(result))
                raise ChunkMissingError(index, chunk_key(file_id, index), str(result)) from result
            if isinstance(result, BaseException):
                raise result
            chunks.append(result)
        return chunks

    def _log_missing(self, file_id: str, index: int, reason: str) -> None:
        logger.warning(
            "Chunk missing or unreadable, merge aborted before upload",
            extra={
                "file_id": file_id,
                "bucket": self.bucket,
                "chunk_index": index,
                "state": MergeState.FAILED.value,
                "reason": reason,
            },
        )

    async def _cleanup(self, file_id: str, total_chunks: int, log_extra: dict) -> Optional[CleanupWarning]:
        keys = chunk_keys(file_id, total_chunks)
        logger.debug("Cleaning up temporary chunks", extra={**log_extra, "state": MergeState.CLEANING.value})
        try:
            await self.storage.remove_many(self.bucket, keys)
        except StorageError as e:
            warning = CleanupWarning(keys, str(e))
            logger.warning(
                "Failed to clean up temporary chunks, chunks left in place",
                extra={**log_extra, "state": MergeState.DONE_WITH_WARNING.value, "error": str(e)},
            )
            return warning

        logger.info(f"Cleaned up {len(keys)} temporary chunks", extra=log_extra)
        return None

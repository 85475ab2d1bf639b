"""Inspect which chunks of an upload session are already in storage."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from mediaupload.storage.base import StorageBackend
from mediaupload.uploads.paths import chunk_prefix, parse_chunk_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedChunk:
    index: int
    size: int


@dataclass
class ChunkStatus:
    """Chunks found for one upload session."""

    file_id: str
    uploaded: list[UploadedChunk] = field(default_factory=list)
    total_chunks: Optional[int] = None

    @property
    def uploaded_indices(self) -> list[int]:
        return [chunk.index for chunk in self.uploaded]

    @property
    def missing_indices(self) -> list[int]:
        """Indices not yet uploaded; empty when the total is unknown."""
        if self.total_chunks is None:
            return []
        present = set(self.uploaded_indices)
        return [i for i in range(self.total_chunks) if i not in present]

    @property
    def complete(self) -> bool:
        return self.total_chunks is not None and not self.missing_indices


async def list_uploaded_chunks(
    storage: StorageBackend,
    bucket: str,
    file_id: str,
    total_chunks: int | None = None,
) -> ChunkStatus:
    """List the chunk objects present under ``temp/chunks/{file_id}``.

    Objects that are not named ``chunk_{n}`` are ignored, as are indices at
    or beyond ``total_chunks`` when it is given.
    """
    objects = await storage.list_objects(bucket, chunk_prefix(file_id))

    uploaded = []
    for obj in objects:
        index = parse_chunk_name(obj.key)
        if index is None:
            continue
        if total_chunks is not None and index >= total_chunks:
            continue
        uploaded.append(UploadedChunk(index=index, size=obj.size))
    uploaded.sort(key=lambda chunk: chunk.index)

    status = ChunkStatus(file_id=file_id, uploaded=uploaded, total_chunks=total_chunks)
    logger.info(
        "Listed uploaded chunks",
        extra={
            "file_id": file_id,
            "bucket": bucket,
            "uploaded_count": len(uploaded),
            "missing_count": len(status.missing_indices),
        },
    )
    return status

"""Chunked upload API routes."""

import logging

from fastapi import APIRouter, Body, Depends

from mediaupload.core.config import settings
from mediaupload.core.exceptions import InvalidRequestError, MediaUploadError
from mediaupload.models.upload import (
    ChunkInfo,
    ChunkStatusRequest,
    ChunkStatusResponse,
    MergeChunksRequest,
    MergeChunksResponse,
    MergeDocumentChunksRequest,
    PresignedUrlsRequest,
    PresignedUrlsResponse,
)
from mediaupload.storage.base import StorageBackend
from mediaupload.storage.factory import get_storage_backend
from mediaupload.uploads.issuer import issue_upload_urls, validate_total_chunks
from mediaupload.uploads.merger import ChunkMerger, MergeResult
from mediaupload.uploads.paths import validate_file_id, validate_object_key
from mediaupload.uploads.status import list_uploaded_chunks

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)


def _require(**fields: object) -> None:
    """Raise a 400 naming every field that is absent or empty."""
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise InvalidRequestError(f"Missing required parameters: {', '.join(missing)}")


def _merge_response(result: MergeResult) -> MergeChunksResponse:
    return MergeChunksResponse(
        file_url=result.final_path,
        public_url=result.public_url,
        content_type=result.content_type,
        size_bytes=result.size_bytes,
        message=f"Successfully merged {result.total_chunks} chunks into {result.final_path}",
        cleanup_warning=str(result.cleanup_warning) if result.cleanup_warning else None,
    )


async def _merge(
    storage: StorageBackend,
    bucket: str,
    file_id: str | None,
    total_chunks: int | None,
    final_path: str | None,
    file_category: str | None,
) -> MergeChunksResponse:
    _require(fileId=file_id, totalChunks=total_chunks, finalPath=final_path)
    file_id = validate_file_id(file_id)
    total_chunks = validate_total_chunks(total_chunks)
    final_path = validate_object_key(final_path)

    try:
        merger = ChunkMerger(storage, bucket)
        result = await merger.merge_chunks(file_id, total_chunks, final_path, file_category)
    except MediaUploadError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during chunk merge: {e}", exc_info=True)
        raise MediaUploadError(f"Unexpected error during chunk merge: {e}") from e

    return _merge_response(result)


@router.post("/get-presigned-urls", response_model=PresignedUrlsResponse)
async def get_presigned_urls(
    request: PresignedUrlsRequest = Body(...),
) -> PresignedUrlsResponse:
    """Issue presigned PUT URLs for every chunk (or one single-file URL)."""
    _require(fileId=request.file_id, totalChunks=request.total_chunks, bucketName=request.bucket_name)

    try:
        signed = issue_upload_urls(
            file_id=request.file_id,
            total_chunks=request.total_chunks,
            bucket=request.bucket_name,
            single_file_path=request.file_path,
        )
    except MediaUploadError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error while issuing presigned URLs: {e}", exc_info=True)
        raise MediaUploadError(f"Unexpected error while issuing presigned URLs: {e}") from e

    return PresignedUrlsResponse(
        urls=[s.url for s in signed],
        file_id=request.file_id.strip(),
        total_chunks=request.total_chunks,
        bucket_name=request.bucket_name.strip(),
        expires_in=signed[0].expires_in,
        message=f"Successfully created {len(signed)} presigned URL(s)",
    )


@router.post("/merge-chunks", response_model=MergeChunksResponse)
async def merge_chunks(
    request: MergeChunksRequest = Body(...),
    storage: StorageBackend = Depends(get_storage_backend),
) -> MergeChunksResponse:
    """Merge uploaded media chunks; content type follows fileCategory."""
    return await _merge(
        storage,
        bucket=(request.bucket_name or settings.MEDIA_BUCKET).strip(),
        file_id=request.file_id,
        total_chunks=request.total_chunks,
        final_path=request.final_path,
        file_category=request.file_category,
    )


@router.post("/merge-document-chunks", response_model=MergeChunksResponse)
async def merge_document_chunks(
    request: MergeDocumentChunksRequest = Body(...),
    storage: StorageBackend = Depends(get_storage_backend),
) -> MergeChunksResponse:
    """Merge uploaded document chunks into the media bucket as binary content."""
    return await _merge(
        storage,
        bucket=settings.MEDIA_BUCKET,
        file_id=request.file_id,
        total_chunks=request.total_chunks,
        final_path=request.final_path,
        file_category="document",
    )


@router.post("/chunk-status", response_model=ChunkStatusResponse)
async def chunk_status(
    request: ChunkStatusRequest = Body(...),
    storage: StorageBackend = Depends(get_storage_backend),
) -> ChunkStatusResponse:
    """Report which chunks of an upload session are already stored."""
    _require(fileId=request.file_id, bucketName=request.bucket_name)
    file_id = validate_file_id(request.file_id)
    total_chunks = None
    if request.total_chunks is not None:
        total_chunks = validate_total_chunks(request.total_chunks)

    try:
        status = await list_uploaded_chunks(storage, request.bucket_name.strip(), file_id, total_chunks)
    except MediaUploadError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error while listing uploaded chunks: {e}", exc_info=True)
        raise MediaUploadError(f"Unexpected error while listing uploaded chunks: {e}") from e

    return ChunkStatusResponse(
        file_id=file_id,
        uploaded_chunks=[ChunkInfo(index=c.index, size=c.size) for c in status.uploaded],
        missing_chunks=status.missing_indices,
        complete=status.complete,
    )

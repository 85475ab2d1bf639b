"""Upload data models.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PresignedUrlsRequest(CamelModel):
    """Request model for issuing presigned upload URLs."""

    file_id: Optional[str] = None
    total_chunks: Optional[int] = None
    bucket_name: Optional[str] = None
    file_path: Optional[str] = None


class PresignedUrlsResponse(CamelModel):
    """Response model for presigned upload URLs."""

    success: bool = True
    urls: list[str]
    file_id: str
    total_chunks: int
    bucket_name: str
    expires_in: int
    message: str


class MergeChunksRequest(CamelModel):
    """Request model for merging uploaded chunks."""

    file_id: Optional[str] = None
    total_chunks: Optional[int] = None
    final_path: Optional[str] = None
    file_category: Optional[str] = None
    bucket_name: Optional[str] = None


class MergeDocumentChunksRequest(CamelModel):
    """Request model for merging document chunks (always binary content)."""

    file_id: Optional[str] = None
    total_chunks: Optional[int] = None
    final_path: Optional[str] = None


class MergeChunksResponse(CamelModel):
    """Response model for a completed merge."""

    success: bool = True
    file_url: str
    public_url: str
    content_type: str
    size_bytes: int
    message: str
    cleanup_warning: Optional[str] = None


class ChunkStatusRequest(CamelModel):
    """Request model for listing uploaded chunks."""

    file_id: Optional[str] = None
    bucket_name: Optional[str] = None
    total_chunks: Optional[int] = None


class ChunkInfo(CamelModel):
    index: int
    size: int


class ChunkStatusResponse(CamelModel):
    """Response model for uploaded chunk inspection."""

    success: bool = True
    file_id: str
    uploaded_chunks: list[ChunkInfo]
    missing_chunks: list[int]
    complete: bool


class ErrorResponse(CamelModel):
    """Structured error body returned for every failure."""

    success: bool = False
    error: str
    code: str
    details: Optional[str] = None
    chunk_index: Optional[int] = None

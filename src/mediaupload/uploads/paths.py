"""Object key conventions shared by URL issuing and chunk merging.

The temporary chunk namespace *is* the upload session state: a session is
identified only by its ``file_id`` and the chunk objects that live under
``temp/chunks/{file_id}/``.
"""

import re

from mediaupload.core.exceptions import InvalidRequestError

CHUNKS_ROOT = "temp/chunks"

_CHUNK_NAME_RE = re.compile(r"^chunk_(\d+)$")

CONTENT_TYPES_BY_CATEGORY = {
    "image": "image/jpeg",
    "video": "video/mp4",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def validate_file_id(file_id: str) -> str:
    """Return the stripped file id, rejecting values that would escape the chunk folder."""
    value = (file_id or "").strip()
    if not value:
        raise InvalidRequestError("fileId is required")
    if "/" in value or "\\" in value or value in (".", ".."):
        raise InvalidRequestError(f"fileId contains invalid characters: {file_id!r}")
    return value


def validate_object_key(key: str) -> str:
    """Reject keys that are empty, absolute, or contain traversal segments."""
    value = (key or "").strip()
    if not value:
        raise InvalidRequestError("Object key is required")
    if value.startswith("/") or "\\" in value:
        raise InvalidRequestError(f"Object key must be a relative path: {key!r}")
    segments = value.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        raise InvalidRequestError(f"Object key contains an invalid segment: {key!r}")
    return value


def chunk_prefix(file_id: str) -> str:
    return f"{CHUNKS_ROOT}/{file_id}"


def chunk_key(file_id: str, index: int) -> str:
    """Key of chunk ``index`` (zero-based) for an upload session."""
    if index < 0:
        raise ValueError(f"Chunk index must be non-negative, got {index}")
    return f"{chunk_prefix(file_id)}/chunk_{index}"


def chunk_keys(file_id: str, total_chunks: int) -> list[str]:
    return [chunk_key(file_id, i) for i in range(total_chunks)]


def is_session_key(file_id: str, key: str) -> bool:
    """True when ``key`` is the chunk folder of ``file_id`` or lies inside it."""
    prefix = chunk_prefix(file_id)
    key = key.strip().strip("/")
    return key == prefix or key.startswith(f"{prefix}/")


def parse_chunk_name(name: str) -> int | None:
    """Return the index encoded in a ``chunk_{n}`` object name, or None."""
    match = _CHUNK_NAME_RE.match(name.rsplit("/", 1)[-1])
    if match is None:
        return None
    return int(match.group(1))


def content_type_for_category(file_category: str | None) -> str:
    """Map a declared file category to the content type of the merged object."""
    return CONTENT_TYPES_BY_CATEGORY.get((file_category or "").strip().lower(), DEFAULT_CONTENT_TYPE)

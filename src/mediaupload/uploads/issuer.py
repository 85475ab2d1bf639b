"""Presigned URL issuing for chunked and single-file uploads."""

import logging
from datetime import datetime
from typing import Callable, Optional

from mediaupload.core.config import settings
from mediaupload.core.exceptions import ConfigurationError, InvalidRequestError
from mediaupload.signing.sigv4 import PresignedUrlSigner, SignedURL, SigningCredentials
from mediaupload.uploads.paths import chunk_keys, validate_file_id, validate_object_key

logger = logging.getLogger(__name__)


def build_signer(clock: Optional[Callable[[], datetime]] = None) -> PresignedUrlSigner:
    """Create a signer from settings.

    Raises:
        ConfigurationError: If any signing setting is missing. There is no
            fallback to built-in credentials.
    """
    missing = [
        name
        for name in ("S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "S3_ENDPOINT")
        if not getattr(settings, name)
    ]
    if missing:
        raise ConfigurationError(f"S3 signing not configured, missing: {', '.join(missing)}")

    credentials = SigningCredentials(
        access_key_id=settings.S3_ACCESS_KEY_ID,
        secret_access_key=settings.S3_SECRET_ACCESS_KEY,
        region=settings.S3_REGION,
    )
    kwargs = {"clock": clock} if clock is not None else {}
    return PresignedUrlSigner(
        credentials,
        endpoint=settings.S3_ENDPOINT,
        gateway_prefix=settings.gateway_prefix,
        expires_in=settings.PRESIGNED_URL_EXPIRES_SECONDS,
        **kwargs,
    )


def validate_total_chunks(total_chunks: int) -> int:
    if isinstance(total_chunks, bool) or not isinstance(total_chunks, int):
        raise InvalidRequestError("totalChunks must be an integer")
    if total_chunks < 1:
        raise InvalidRequestError("totalChunks must be at least 1")
    if total_chunks > settings.max_total_chunks:
        raise InvalidRequestError(
            f"totalChunks exceeds the maximum of {settings.max_total_chunks}"
        )
    return total_chunks


def upload_keys(file_id: str, total_chunks: int, single_file_path: str | None = None) -> list[str]:
    """Object keys that will receive the client's PUTs, in order.

    A single-chunk upload with an explicit path goes straight to that path;
    anything else lands in the temporary chunk folder.
    """
    if total_chunks == 1 and single_file_path:
        return [validate_object_key(single_file_path)]
    return chunk_keys(file_id, total_chunks)


def issue_upload_urls(
    file_id: str,
    total_chunks: int,
    bucket: str,
    single_file_path: str | None = None,
    signer: PresignedUrlSigner | None = None,
) -> list[SignedURL]:
    """Issue one presigned PUT URL per object key.

    Args:
        file_id: Client-generated upload session id
        total_chunks: Number of chunks the client will upload
        bucket: Target bucket
        single_file_path: Final path for a non-chunked upload
        signer: Signer to use; built from settings when omitted

    Returns:
        Signed URLs in chunk-index order

    Raises:
        InvalidRequestError: If an input is missing or malformed
        ConfigurationError: If signing is not configured
        SigningError: If signing fails for any key
    """
    file_id = validate_file_id(file_id)
    total_chunks = validate_total_chunks(total_chunks)
    bucket = (bucket or "").strip()
    if not bucket:
        raise InvalidRequestError("bucketName is required")

    keys = upload_keys(file_id, total_chunks, single_file_path)
    if signer is None:
        signer = build_signer()

    logger.info(
        "Issuing presigned upload URLs",
        extra={
            "file_id": file_id,
            "total_chunks": total_chunks,
            "bucket": bucket,
            "single_file": len(keys) == 1 and bool(single_file_path),
            "access_key_id": signer.credentials.access_key_id[:8] + "...",
        },
    )

    signed = [signer.presign_put(bucket, key) for key in keys]

    logger.info(
        f"Issued {len(signed)} presigned URL(s)",
        extra={"file_id": file_id, "bucket": bucket, "expires_in": signer.expires_in},
    )
    return signed

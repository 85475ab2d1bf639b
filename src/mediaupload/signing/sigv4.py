"""Presigned PUT URLs using AWS Signature Version 4, without an SDK.

Only the subset needed for S3-compatible presigned uploads is implemented:
one HTTP method, query-string authentication, ``host`` as the sole signed
header and an unsigned payload.

S3-compatible gateways that sit behind a path prefix (Supabase serves its
gateway under ``/storage/v1/s3``) verify the signature against the path
*without* that prefix, while the request itself must be sent *with* it. The
canonical URI and the dispatched URL path are therefore built as two
separate strings.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
from urllib.parse import quote, urlsplit

from mediaupload.core.exceptions import ConfigurationError, SigningError

logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
REQUEST_TYPE = "aws4_request"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
SIGNED_HEADERS = "host"
UPLOAD_METHOD = "PUT"

# SigV4 presigned URLs cannot outlive seven days
MAX_EXPIRES_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class SigningCredentials:
    """Static credentials for the S3-compatible gateway."""

    access_key_id: str
    secret_access_key: str
    region: str = "us-east-1"


@dataclass(frozen=True)
class EndpointParts:
    """Storage endpoint split into the pieces signing needs."""

    scheme: str
    host: str
    gateway_prefix: str

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"


@dataclass(frozen=True)
class SignedURL:
    """A presigned PUT URL and the values it was derived from."""

    url: str
    bucket: str
    key: str
    canonical_uri: str
    url_path: str
    amz_date: str
    expires_in: int
    issued_at: datetime
    signature: str

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.expires_in)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_amz_timestamps(now: datetime) -> tuple[str, str]:
    """Return ``(date_stamp, amz_date)`` for an instant, both in UTC.

    Naive datetimes are taken to already be UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y%m%d"), now.strftime("%Y%m%dT%H%M%SZ")


def split_endpoint(endpoint: str, gateway_prefix: str = "") -> EndpointParts:
    """Separate the bare host from the provider's gateway path prefix.

    The endpoint may be configured with or without the prefix; either way the
    host is taken from it and the prefix is carried separately.
    """
    if not endpoint or not endpoint.strip():
        raise ConfigurationError("S3 endpoint is not configured")

    prefix = gateway_prefix.strip().strip("/")
    prefix = f"/{prefix}" if prefix else ""

    raw = endpoint.strip()
    if prefix and prefix in raw:
        raw = raw.replace(prefix, "", 1)

    parts = urlsplit(raw)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError(f"S3 endpoint must be an absolute http(s) URL: {endpoint!r}")

    return EndpointParts(scheme=parts.scheme, host=parts.netloc, gateway_prefix=prefix)


def uri_encode(value: str) -> str:
    """Percent-encode everything outside the RFC 3986 unreserved set (``/`` included)."""
    return quote(value, safe="")


def encode_object_key(key: str) -> str:
    """Encode each key segment independently, keeping ``/`` as the separator."""
    return "/".join(uri_encode(segment) for segment in key.split("/"))


def build_canonical_uri(bucket: str, key: str) -> str:
    """Path-style canonical URI. Never includes the gateway prefix."""
    return f"/{bucket}/{encode_object_key(key)}"


def build_url_path(gateway_prefix: str, canonical_uri: str) -> str:
    """Path actually dispatched to the gateway, prefix included."""
    return f"{gateway_prefix}{canonical_uri}"


def credential_scope(date_stamp: str, region: str, service: str = SERVICE) -> str:
    return f"{date_stamp}/{region}/{service}/{REQUEST_TYPE}"


def build_credential(access_key_id: str, scope: str) -> str:
    return f"{access_key_id}/{scope}"


def canonical_query_string(credential: str, amz_date: str, expires_in: int) -> str:
    """The five presign parameters, encoded and sorted by name."""
    params = {
        "X-Amz-Algorithm": ALGORITHM,
        "X-Amz-Credential": credential,
        "X-Amz-Date": amz_date,
        "X-Amz-Expires": str(expires_in),
        "X-Amz-SignedHeaders": SIGNED_HEADERS,
    }
    return "&".join(f"{uri_encode(name)}={uri_encode(params[name])}" for name in sorted(params))


def canonical_headers(host: str) -> str:
    return f"host:{host}\n"


def canonical_request(
    canonical_uri: str,
    canonical_query: str,
    host: str,
    method: str = UPLOAD_METHOD,
) -> str:
    """Six newline-joined fields; the headers block carries its own trailing newline."""
    return "\n".join(
        [
            method,
            canonical_uri,
            canonical_query,
            canonical_headers(host),
            SIGNED_HEADERS,
            UNSIGNED_PAYLOAD,
        ]
    )


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def string_to_sign(amz_date: str, scope: str, canonical_request_text: str) -> str:
    return f"{ALGORITHM}\n{amz_date}\n{scope}\n{sha256_hex(canonical_request_text)}"


def _hmac_sha256(key: bytes, data: str) -> bytes:
    return hmac.new(key, data.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_access_key: str, date_stamp: str, region: str, service: str = SERVICE) -> bytes:
    k_date = _hmac_sha256(f"AWS4{secret_access_key}".encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, REQUEST_TYPE)


def compute_signature(signing_key: bytes, string_to_sign_text: str) -> str:
    return hmac.new(signing_key, string_to_sign_text.encode("utf-8"), hashlib.sha256).hexdigest()


def valid_expiry(expires_in: int) -> bool:
    """SigV4 accepts whole seconds from 1 up to seven days."""
    if isinstance(expires_in, bool) or not isinstance(expires_in, int):
        return False
    return 1 <= expires_in <= MAX_EXPIRES_SECONDS


def _expiry_message(expires_in: object) -> str:
    return f"Presigned URL expiry must be between 1 and {MAX_EXPIRES_SECONDS} seconds, got {expires_in!r}"


class PresignedUrlSigner:
    """Mint presigned PUT URLs against a single S3-compatible endpoint.

    Signing is a pure function of the credentials, endpoint, bucket, key and
    the clock reading; the signer holds no mutable state and never contacts
    the storage provider.
    """

    def __init__(
        self,
        credentials: SigningCredentials,
        endpoint: str,
        gateway_prefix: str = "",
        expires_in: int = 3600,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not credentials.access_key_id or not credentials.secret_access_key:
            raise ConfigurationError("S3 credentials not configured")
        if not credentials.region:
            raise ConfigurationError("S3 region not configured")
        if not valid_expiry(expires_in):
            raise ConfigurationError(_expiry_message(expires_in))

        self.credentials = credentials
        self.endpoint = split_endpoint(endpoint, gateway_prefix)
        self.expires_in = expires_in
        self._clock = clock

    def presign_put(self, bucket: str, key: str, expires_in: int | None = None) -> SignedURL:
        """Build a presigned PUT URL for ``bucket``/``key``.

        Raises:
            SigningError: If any step of the signing pipeline fails
                or ``expires_in`` is outside 1 to 604800 seconds
        """
        expires = self.expires_in if expires_in is None else expires_in
        if not valid_expiry(expires):
            raise SigningError(_expiry_message(expires))
        issued_at = self._clock()

        try:
            date_stamp, amz_date = format_amz_timestamps(issued_at)
            canonical_uri = build_canonical_uri(bucket, key)
            url_path = build_url_path(self.endpoint.gateway_prefix, canonical_uri)

            scope = credential_scope(date_stamp, self.credentials.region)
            credential = build_credential(self.credentials.access_key_id, scope)
            query = canonical_query_string(credential, amz_date, expires)

            request_text = canonical_request(canonical_uri, query, self.endpoint.host)
            to_sign = string_to_sign(amz_date, scope, request_text)

            signing_key = derive_signing_key(
                self.credentials.secret_access_key, date_stamp, self.credentials.region
            )
            signature = compute_signature(signing_key, to_sign)
        except (TypeError, ValueError, AttributeError, UnicodeError) as e:
            logger.error(
                "Failed to sign upload URL",
                extra={"bucket": bucket, "key": key, "error": str(e)},
                exc_info=True,
            )
            raise SigningError(f"Failed to sign URL for {bucket}/{key}: {e}") from e

        url = f"{self.endpoint.base_url}{url_path}?{query}&X-Amz-Signature={signature}"

        logger.debug(
            "Presigned upload URL",
            extra={
                "bucket": bucket,
                "key": key,
                "canonical_uri": canonical_uri,
                "url_path": url_path,
                "amz_date": amz_date,
                "expires_in": expires,
            },
        )

        return SignedURL(
            url=url,
            bucket=bucket,
            key=key,
            canonical_uri=canonical_uri,
            url_path=url_path,
            amz_date=amz_date,
            expires_in=expires,
            issued_at=issued_at,
            signature=signature,
        )

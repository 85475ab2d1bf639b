"""Supabase Storage backend (REST API over httpx)."""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from mediaupload.core.config import settings
from mediaupload.core.exceptions import ConfigurationError, ObjectNotFoundError, StorageError
from mediaupload.storage.base import StorageBackend, StoredObject

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000


class TransientStorageError(StorageError):
    """Server-side failure that is worth retrying."""


def _quote_key(key: str) -> str:
    return quote(key, safe="/")


def _is_not_found(response: httpx.Response) -> bool:
    if response.status_code == 404:
        return True
    # The storage API reports missing objects as 400 with an embedded 404
    if response.status_code == 400:
        try:
            body = response.json()
        except ValueError:
            return False
        if isinstance(body, dict):
            return str(body.get("statusCode")) == "404" or body.get("error") in ("not_found", "Not found")
    return False


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


class SupabaseStorageBackend(StorageBackend):
    """Object storage through the Supabase Storage REST API."""

    def __init__(
        self,
        url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._url = url
        self._service_key = service_key
        self._timeout = timeout
        self._client = client

    @property
    def base_url(self) -> str:
        url = self._url if self._url is not None else settings.SUPABASE_URL
        if not url:
            raise ConfigurationError("SUPABASE_URL not configured")
        return url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        key = self._service_key if self._service_key is not None else settings.SUPABASE_SERVICE_ROLE_KEY
        if not key:
            raise ConfigurationError("SUPABASE_SERVICE_ROLE_KEY not configured")
        return {"Authorization": f"Bearer {key}", "apikey": key}

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy-load and cache the HTTP client."""
        if self._client is None:
            timeout = self._timeout if self._timeout is not None else settings.STORAGE_REQUEST_TIMEOUT
            self._client = httpx.AsyncClient(timeout=timeout)
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((httpx.TransportError, TransientStorageError)),
        reraise=True,
    )
    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}/storage/v1/{path}"
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        response = await self._get_client().request(method, url, headers=headers, **kwargs)
        if response.status_code >= 500:
            logger.warning(
                "Storage API server error",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise TransientStorageError(
                f"Storage API returned {response.status_code}: {_error_message(response)}"
            )
        return response

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._send(method, path, **kwargs)
        except httpx.TransportError as e:
            raise StorageError(f"Storage API request failed: {e}") from e

    async def get(self, bucket: str, key: str) -> bytes:
        response = await self._request("GET", f"object/{bucket}/{_quote_key(key)}")
        if _is_not_found(response):
            raise ObjectNotFoundError(bucket, key)
        if response.is_error:
            raise StorageError(
                f"Failed to download {bucket}/{key}: {response.status_code} {_error_message(response)}"
            )
        return response.content

    async def put(
        self, bucket: str, key: str, data: bytes, content_type: str, upsert: bool = True
    ) -> None:
        response = await self._request(
            "POST",
            f"object/{bucket}/{_quote_key(key)}",
            content=data,
            headers={
                "Content-Type": content_type,
                "cache-control": "max-age=3600",
                "x-upsert": "true" if upsert else "false",
            },
        )
        if response.is_error:
            raise StorageError(
                f"Failed to upload {bucket}/{key}: {response.status_code} {_error_message(response)}"
            )

    async def remove_many(self, bucket: str, keys: list[str]) -> None:
        if not keys:
            return
        response = await self._request("DELETE", f"object/{bucket}", json={"prefixes": keys})
        if _is_not_found(response):
            return
        if response.is_error:
            raise StorageError(
                f"Failed to delete {len(keys)} object(s) from {bucket}: "
                f"{response.status_code} {_error_message(response)}"
            )

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{_quote_key(key)}"

    async def list_objects(self, bucket: str, prefix: str) -> list[StoredObject]:
        prefix = prefix.strip("/")
        objects: list[StoredObject] = []
        offset = 0
        while True:
            response = await self._request(
                "POST",
                f"object/list/{bucket}",
                json={
                    "prefix": prefix,
                    "limit": LIST_PAGE_SIZE,
                    "offset": offset,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
            if _is_not_found(response):
                return []
            if response.is_error:
                raise StorageError(
                    f"Failed to list {bucket}/{prefix}: {response.status_code} {_error_message(response)}"
                )

            page = response.json() or []
            for item in page:
                # Folders come back without an id
                if item.get("id") is None and not item.get("metadata"):
                    continue
                size = (item.get("metadata") or {}).get("size") or 0
                objects.append(StoredObject(key=f"{prefix}/{item['name']}", size=int(size)))

            if len(page) < LIST_PAGE_SIZE:
                return objects
            offset += LIST_PAGE_SIZE

    def get_backend_name(self) -> str:
        return "supabase"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Singleton instance
supabase_backend = SupabaseStorageBackend()

"""
Supabase Storage gateway over httpx.

``StorageGateway`` wraps the object endpoints of one bucket: list, download,
upload, update, copy, remove, and a copy-then-remove ``rename``. Duplicate
and missing-object answers are mapped to ``ObjectExistsError`` and
``ObjectNotFoundError``; every other failure is a ``StorageError``.
"""

from __future__ import annotations

import json
import logging
from urllib.parse import quote

import httpx

from medscribe.core.config import Settings, get_settings
from medscribe.core.exceptions import (
    ConfigurationError,
    ObjectExistsError,
    ObjectNotFoundError,
    ServiceConnectionError,
    StorageError,
)
from medscribe.core.models import RenameResult, StorageEntry

logger = logging.getLogger(__name__)

SERVICE_NAME = "Supabase Storage"


def _error_fields(response: httpx.Response) -> tuple[str, str]:
    """Return (statusCode, error) from a Supabase error envelope, if any."""
    try:
        payload = response.json()
    except ValueError:
        return "", ""
    if not isinstance(payload, dict):
        return "", ""
    return str(payload.get("statusCode", "")), str(payload.get("error", ""))


def _entry_from_payload(item: dict) -> StorageEntry:
    metadata = item.get("metadata") or {}
    return StorageEntry(
        name=item.get("name", ""),
        id=item.get("id"),
        created_at=item.get("created_at"),
        updated_at=item.get("updated_at"),
        size=metadata.get("size") or 0,
        mime_type=metadata.get("mimetype"),
    )


class StorageGateway:
    """Object storage client bound to one bucket.

    Configuration is a construction-time precondition: without
    ``supabase_url`` and ``supabase_key`` no gateway can exist.

    Args:
        settings: Settings instance (defaults to ``get_settings()``).
        client: Optional pre-built ``httpx.AsyncClient``.
        bucket: Overrides ``settings.storage_bucket``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        bucket: str | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        if not self._settings.supabase_url:
            raise ConfigurationError("supabase_url", SERVICE_NAME)
        if not self._settings.supabase_key:
            raise ConfigurationError("supabase_key", SERVICE_NAME)
        self.bucket = bucket or self._settings.storage_bucket
        self._base = f"{self._settings.supabase_url.rstrip('/')}/storage/v1"
        key = self._settings.supabase_key
        self._headers = {"apikey": key, "Authorization": f"Bearer {key}"}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._settings.http_timeout)

    def _object_url(self, key: str) -> str:
        return f"{self._base}/object/{quote(self.bucket)}/{quote(key, safe='/')}"

    async def _request(self, method: str, url: str, key: str | None = None, **kwargs) -> httpx.Response:
        """Execute one request, mapping failures onto the storage errors."""
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Storage connection error: %s", exc)
            raise ServiceConnectionError(SERVICE_NAME, str(exc)) from exc

        if response.is_success:
            return response

        body = response.text
        status_code, error = _error_fields(response)
        if key is not None:
            if response.status_code == 409 or status_code == "409" or error == "Duplicate":
                raise ObjectExistsError(key, status=response.status_code, body=body)
            if response.status_code == 404 or status_code == "404" or error in ("not_found", "Not found"):
                raise ObjectNotFoundError(key, status=response.status_code, body=body)
        logger.error("Storage request %s %s failed (%d): %s", method, url, response.status_code, body)
        raise StorageError(
            f"Storage request failed: {response.status_code} {body}",
            status=response.status_code,
            body=body,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def list(
        self,
        prefix: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_by: tuple[str, str] = ("created_at", "desc"),
    ) -> list[StorageEntry]:
        """List objects under ``prefix``, sorted by ``sort_by`` (column, order)."""
        column, order = sort_by
        response = await self._request(
            "POST",
            f"{self._base}/object/list/{quote(self.bucket)}",
            json={
                "prefix": prefix,
                "limit": limit,
                "offset": offset,
                "sortBy": {"column": column, "order": order},
            },
        )
        return [_entry_from_payload(item) for item in response.json() or []]

    async def download(self, key: str) -> bytes:
        response = await self._request("GET", self._object_url(key), key=key)
        return response.content

    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> None:
        """Create ``key``; raises ``ObjectExistsError`` if present and not ``upsert``."""
        await self._request(
            "POST",
            self._object_url(key),
            key=key,
            content=data,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
                "cache-control": "max-age=3600",
            },
        )
        logger.info("Uploaded %s (%d bytes)", key, len(data))

    async def update(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """Overwrite an existing ``key``; raises ``ObjectNotFoundError`` if missing."""
        await self._request(
            "PUT",
            self._object_url(key),
            key=key,
            content=data,
            headers={"Content-Type": content_type, "cache-control": "max-age=3600"},
        )
        logger.info("Updated %s (%d bytes)", key, len(data))

    async def copy(self, source: str, destination: str) -> None:
        """Copy ``source`` to ``destination`` within the bucket."""
        await self._request(
            "POST",
            f"{self._base}/object/copy",
            key=destination,
            json={"bucketId": self.bucket, "sourceKey": source, "destinationKey": destination},
        )

    async def remove(self, keys: list[str]) -> list[str]:
        """Delete ``keys``; returns the names the service reports as removed."""
        response = await self._request(
            "DELETE",
            f"{self._base}/object/{quote(self.bucket)}",
            content=json.dumps({"prefixes": keys}),
            headers={"Content-Type": "application/json"},
        )
        removed = response.json() or []
        return [item.get("name", "") for item in removed if isinstance(item, dict)]

    async def rename(self, source: str, destination: str) -> RenameResult:
        """Copy then remove.

        The copy must succeed before removal is attempted; its failure
        propagates. A failed removal after a successful copy, or one the
        service does not confirm, is reported as a partial success rather
        than an error.
        """
        await self.copy(source, destination)
        try:
            removed = await self.remove([source])
        except (StorageError, ServiceConnectionError) as exc:
            return self._partial_rename(source, destination, exc.detail)
        if source not in removed:
            return self._partial_rename(source, destination, "storage did not report it as removed")
        logger.info("Renamed %s -> %s", source, destination)
        return RenameResult(source=source, destination=destination)

    @staticmethod
    def _partial_rename(source: str, destination: str, reason: str) -> RenameResult:
        warning = f'Renamed to "{destination}", but failed to remove original file "{source}": {reason}'
        logger.warning("%s", warning)
        return RenameResult(source=source, destination=destination, source_removed=False, warning=warning)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

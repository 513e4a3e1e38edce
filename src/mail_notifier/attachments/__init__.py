# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Attachment resolution from external storage.

:class:`AttachmentResolver` turns declared attachments into in-memory
content by calling a *dereference* collaborator for each URI. The host
engine may inject its own; :class:`StorageDereferencer` is the default and
routes each URI to a fetcher by its form:

- ``base64:content`` - Inline base64-encoded content
- ``http://...`` / ``https://...`` - HTTP GET
- ``file:///absolute/path`` or ``/absolute/path`` - Local filesystem
- ``volume:path`` - genro-storage volume (requires a storage manager)
- ``relative/path`` - Local filesystem path relative to base_dir

Example:
    Resolving attachments with the default router::

        from mail_notifier.attachments import AttachmentResolver, StorageDereferencer

        resolver = AttachmentResolver(StorageDereferencer(base_dir="/var/files"))
        resolved = await resolver.resolve(request.attachments)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .base64_fetcher import PREFIX as BASE64_PREFIX
from .base64_fetcher import Base64Fetcher
from .filesystem_fetcher import FilesystemFetcher
from .http_fetcher import HttpFetcher
from .resolver import AttachmentResolver, Dereference, read_all
from .storage_fetcher import StorageFetcher

if TYPE_CHECKING:
    from genro_storage import AsyncStorageManager

__all__ = [
    "AttachmentResolver",
    "Base64Fetcher",
    "Dereference",
    "FilesystemFetcher",
    "HttpFetcher",
    "StorageDereferencer",
    "StorageFetcher",
    "read_all",
]


class StorageDereferencer:
    """Default blob-storage collaborator, routing URIs to fetchers.

    Instances are callables usable as the ``dereference`` argument of
    :meth:`AttachmentResolver.resolve`.

    Attributes:
        _storage_fetcher: Fetcher for ``volume:path`` URIs (optional).
        _base64_fetcher: Fetcher for inline base64 content.
        _filesystem_fetcher: Fetcher for local paths.
        _http_fetcher: Fetcher for HTTP(S) URLs.
    """

    def __init__(
        self,
        storage_manager: Optional["AsyncStorageManager"] = None,
        base_dir: Optional[str] = None,
        http_auth_config: Optional[dict[str, str]] = None,
        http_timeout: Optional[float] = None,
    ):
        """Initialize the router with its fetchers.

        Args:
            storage_manager: Storage manager for ``volume:path`` URIs. When
                None those URIs are rejected.
            base_dir: Base directory confining filesystem access.
            http_auth_config: HTTP authentication config with keys
                method ("none", "bearer", "basic"), token, user, password.
            http_timeout: Total HTTP request timeout in seconds.
        """
        self._storage_fetcher = StorageFetcher(storage_manager) if storage_manager is not None else None
        self._base64_fetcher = Base64Fetcher()
        self._filesystem_fetcher = FilesystemFetcher(base_dir=base_dir)
        self._http_fetcher = HttpFetcher(auth_config=http_auth_config, timeout=http_timeout)

    def classify(self, uri: str) -> str:
        """Return the backend handling ``uri``.

        One of "base64", "http", "filesystem" or "storage".

        Raises:
            ValueError: Empty URI, or a volume URI without storage manager.
        """
        if not uri:
            raise ValueError("Empty attachment URI")

        if uri.startswith(BASE64_PREFIX):
            return "base64"

        if uri.startswith(("http://", "https://")):
            return "http"

        if uri.startswith(("file:", "/")):
            return "filesystem"

        if ":" in uri:
            # Volume names never contain a path separator before the colon
            potential_volume = uri[: uri.index(":")]
            if "/" not in potential_volume and "\\" not in potential_volume:
                if self._storage_fetcher is None:
                    raise ValueError(f"No storage configured for volume URI: {uri}")
                return "storage"

        return "filesystem"

    async def __call__(self, uri: str) -> bytes:
        backend = self.classify(uri)

        if backend == "base64":
            return await self._base64_fetcher.fetch(uri)

        if backend == "http":
            return await self._http_fetcher.fetch(uri)

        if backend == "storage":
            return await self._storage_fetcher.fetch(uri)

        return await self._filesystem_fetcher.fetch(uri)

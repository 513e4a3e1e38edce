# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Attachments stored in genro-storage volumes (``volume:path/to/file``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from genro_storage import AsyncStorageManager


class StorageFetcher:
    """Read attachments through a configured storage manager.

    Any object exposing ``node(path)`` whose node has an awaitable
    ``read(mode="rb")`` works; in production this is genro-storage's
    ``AsyncStorageManager`` with its volumes mounted.
    """

    def __init__(self, storage_manager: "AsyncStorageManager"):
        self._storage = storage_manager

    async def fetch(self, storage_path: str) -> bytes:
        """Read ``storage_path`` in binary mode.

        Raises:
            StorageNotFoundError: If volume or file doesn't exist
            StorageError: On other storage errors
        """
        if not storage_path:
            raise ValueError("Empty storage path")
        node = self._storage.node(storage_path)
        return await node.read(mode="rb")

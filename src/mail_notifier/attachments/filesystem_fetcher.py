# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Local filesystem attachment URIs.

Accepts ``file://`` URIs and absolute paths. When ``base_dir`` is
configured every path, absolute ones included, must resolve inside it and
relative paths are resolved against it.

Example:
    Reading from a confined directory::

        fetcher = FilesystemFetcher(base_dir="/var/lib/flows/outputs")
        content = await fetcher.fetch("file:///var/lib/flows/outputs/report.pdf")
        content = await fetcher.fetch("exports/report.csv")
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import unquote, urlparse


class FilesystemFetcher:
    """Read attachment content from the local filesystem.

    Attributes:
        _base_dir: Security boundary and anchor for relative paths.
    """


    def __init__(self, base_dir: str | None = None):
        self._base_dir: Path | None = None
        if base_dir:
            self._base_dir = Path(base_dir).expanduser().resolve()

    async def fetch(self, uri: str) -> bytes:
        """Read the whole file referenced by ``uri``.

        Raises:
            ValueError: Empty path, path traversal or not a regular file.
            FileNotFoundError: The file does not exist.
            PermissionError: The file cannot be read.
        """
        path = self.locate(uri)
        if not path.is_file():
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")
            raise ValueError(f"Not a regular file: {path}")
        return await asyncio.to_thread(path.read_bytes)

    def locate(self, uri: str) -> Path:
        """Map an attachment URI to a resolved local path inside ``base_dir``."""
        if not uri:
            raise ValueError("Empty path provided")

        raw = uri
        if uri.startswith("file:"):
            parsed = urlparse(uri)
            if parsed.netloc not in ("", "localhost"):
                raise ValueError(f"Remote file URI not supported: {uri}")
            raw = unquote(parsed.path)

        candidate = Path(raw)
        if not candidate.is_absolute():
            if self._base_dir is None:
                raise ValueError(f"Relative path '{raw}' not allowed without base_dir configuration")
            candidate = self._base_dir / candidate
        path = candidate.resolve()

        if self._base_dir is not None and not path.is_relative_to(self._base_dir):
            raise ValueError(f"Path traversal detected: '{raw}' resolves outside base directory")
        return path

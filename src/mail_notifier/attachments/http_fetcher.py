# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTTP(S) attachment URIs, downloaded with aiohttp."""

from __future__ import annotations

import base64
from typing import Optional

import aiohttp


class HttpFetcher:
    """Download attachment content with a GET request.

    Supports bearer token or basic authentication.

    Attributes:
        _auth_config: Keys ``method`` ("none", "bearer", "basic"),
            ``token``, ``user`` and ``password``.
        _timeout: Total request timeout in seconds, None for aiohttp's default.
    """

    def __init__(
        self,
        auth_config: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ):
        self._auth_config = auth_config or {}
        self._timeout = timeout

    def _get_auth_headers(self) -> dict[str, str]:
        method = self._auth_config.get("method", "none")

        if method == "bearer":
            token = self._auth_config.get("token", "")
            return {"Authorization": f"Bearer {token}"}

        if method == "basic":
            user = self._auth_config.get("user", "")
            password = self._auth_config.get("password", "")
            credentials = base64.b64encode(f"{user}:{password}".encode()).decode()
            return {"Authorization": f"Basic {credentials}"}

        return {}

    async def fetch(self, url: str) -> bytes:
        """Return the body of ``url``.

        Raises:
            aiohttp.ClientError: Connection failure or non-2xx status.
        """
        timeout = aiohttp.ClientTimeout(total=self._timeout) if self._timeout else None
        session_kwargs = {"timeout": timeout} if timeout else {}
        async with aiohttp.ClientSession(**session_kwargs) as session:
            async with session.get(url, headers=self._get_auth_headers()) as response:
                response.raise_for_status()
                return await response.read()

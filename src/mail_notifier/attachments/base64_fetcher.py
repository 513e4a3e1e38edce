# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Inline ``base64:<data>`` attachment URIs."""

from __future__ import annotations

import base64
import binascii

PREFIX = "base64:"


class Base64Fetcher:
    """Decode content carried inline in the URI itself."""

    async def fetch(self, uri: str) -> bytes:
        """Decode the payload of a ``base64:`` URI.

        Whitespace is ignored and missing padding is tolerated.

        Raises:
            ValueError: The payload is empty or not valid base64.
        """
        payload = uri[len(PREFIX):] if uri.startswith(PREFIX) else uri
        payload = "".join(payload.split())
        if not payload:
            raise ValueError("Empty base64 payload")

        padding_needed = -len(payload) % 4
        payload += "=" * padding_needed
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 content: {e}") from e

# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Resolve declared attachments into in-memory content, all or nothing."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from ..errors import AttachmentResolutionError
from ..logger import get_logger
from ..models import AttachmentRef, ResolvedAttachment

# Returns bytes, or a readable object whose read() may be sync or async
Dereference = Callable[[str], Awaitable[Any]]


async def read_all(source: Any) -> bytes:
    """Read ``source`` fully into memory and close it.

    ``source`` is either a bytes-like object or an object with a ``read()``
    method, synchronous or asynchronous. ``close()`` is called when present,
    also when reading fails.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    read = getattr(source, "read", None)
    if read is None:
        raise TypeError(f"Unsupported attachment source: {type(source).__name__}")

    try:
        data = read()
        if inspect.isawaitable(data):
            data = await data
    finally:
        close = getattr(source, "close", None)
        if close is not None:
            closed = close()
            if inspect.isawaitable(closed):
                await closed

    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Attachment stream returned {type(data).__name__}, expected bytes")
    return bytes(data)


class AttachmentResolver:
    """Dereference attachment URIs through a storage collaborator.

    Resolution preserves declaration order and fails fast: the first URI
    that cannot be read aborts the whole call with
    :class:`AttachmentResolutionError`, so a message is never sent with a
    partial attachment set. Nothing is cached between calls.
    """

    def __init__(
        self,
        dereference: Optional[Dereference] = None,
        *,
        parallel: bool = False,
        timeout: Optional[float] = None,
    ):
        """Configure the resolver.

        Args:
            dereference: Default storage collaborator, ``async (uri) -> bytes``.
            parallel: Fetch independent URIs concurrently.
            timeout: Seconds allowed for each single fetch, None for no bound.
        """
        self._dereference = dereference
        self._parallel = parallel
        self._timeout = timeout
        self.logger = get_logger("AttachmentResolver")

    async def resolve(
        self,
        refs: Optional[Iterable[AttachmentRef]],
        dereference: Optional[Dereference] = None,
    ) -> List[ResolvedAttachment]:
        """Resolve ``refs`` in order.

        Args:
            refs: Declared attachments; None behaves as an empty list.
            dereference: Overrides the collaborator given at construction.

        Raises:
            AttachmentResolutionError: Any URI could not be read.
        """
        deref = dereference or self._dereference
        if deref is None:
            raise ValueError("No dereference collaborator configured")

        refs = list(refs or ())
        if not refs:
            return []

        if self._parallel and len(refs) > 1:
            tasks = [asyncio.create_task(self._resolve_one(ref, deref)) for ref in refs]
            try:
                resolved = list(await asyncio.gather(*tasks))
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            resolved = []
            for ref in refs:
                resolved.append(await self._resolve_one(ref, deref))

        self.logger.debug("Resolved %d attachment(s)", len(resolved))
        return resolved

    async def _resolve_one(self, ref: AttachmentRef, deref: Dereference) -> ResolvedAttachment:
        try:
            content = await asyncio.wait_for(self._fetch(ref, deref), timeout=self._timeout)
        except AttachmentResolutionError:
            raise
        except TimeoutError as exc:
            reason = f"timed out after {self._timeout}s" if self._timeout else (str(exc) or "timed out")
            raise AttachmentResolutionError(ref.uri, reason) from exc
        except Exception as exc:
            self.logger.warning("Failed to resolve attachment %s: %s", ref.name, exc)
            raise AttachmentResolutionError(ref.uri, str(exc)) from exc

        return ResolvedAttachment(name=ref.name, content_type=ref.content_type, content=content)

    async def _fetch(self, ref: AttachmentRef, deref: Dereference) -> bytes:
        return await read_all(await deref(ref.uri))

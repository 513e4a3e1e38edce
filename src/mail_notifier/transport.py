# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP delivery of a composed message.

Every call opens its own aiosmtplib session; nothing is pooled or reused.
A session walks through::

    idle -> connecting -> authenticating -> sending -> closed

and is always released, on success, failure, timeout and cancellation
alike. Failures are reported with the stage they happened in so the
caller can tell a wrong password (``auth``) from an unreachable server
(``connect``) or a rejected message (``send``).
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import aiosmtplib

from .errors import TransportError, TransportTimeoutError
from .logger import get_logger
from .models import ComposedMessage, SmtpSettings, TransportStrategy

T = TypeVar("T")

STAGE_CONNECT = "connect"
STAGE_AUTH = "auth"
STAGE_SEND = "send"


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    SENDING = "sending"
    CLOSED = "closed"


class SmtpSession:
    """A single SMTP connection, usable as an async context manager.

    Entering connects (and authenticates when a username is configured);
    exiting releases the connection whatever happened inside the block.
    """

    def __init__(
        self,
        settings: SmtpSettings,
        on_state: Optional[Callable[[SessionState], None]] = None,
    ):
        self.settings = settings
        self.state = SessionState.IDLE
        self.succeeded = False
        self._on_state = on_state
        self._smtp: Optional[aiosmtplib.SMTP] = None
        self.logger = get_logger("MailTransport")

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        if self._on_state is not None:
            self._on_state(state)

    def _create_client(self) -> aiosmtplib.SMTP:
        strategy = self.settings.strategy
        return aiosmtplib.SMTP(
            hostname=self.settings.host,
            port=self.settings.port,
            use_tls=strategy == TransportStrategy.SMTPS,
            start_tls=strategy == TransportStrategy.STARTTLS,
            timeout=self.settings.timeout,
        )

    async def _phase(self, stage: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run one protocol phase within the session timeout."""
        try:
            return await asyncio.wait_for(operation(), timeout=self.settings.timeout)
        except TimeoutError as exc:
            # Covers aiosmtplib.SMTPTimeoutError as well as our own bound
            raise TransportTimeoutError(stage, self.settings.timeout_ms, exc) from exc
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise TransportError(stage, exc) from exc

    async def open(self) -> None:
        """Connect, negotiate TLS according to the strategy and log in."""
        self._set_state(SessionState.CONNECTING)
        self._smtp = self._create_client()
        self.logger.debug(
            "Connecting to %s:%s (%s)",
            self.settings.host,
            self.settings.port,
            self.settings.strategy.value,
        )
        await self._phase(STAGE_CONNECT, self._smtp.connect)

        if self.settings.username:
            self._set_state(SessionState.AUTHENTICATING)
            await self._phase(
                STAGE_AUTH,
                lambda: self._smtp.login(self.settings.username, self.settings.password or ""),
            )

    async def send(self, composed: ComposedMessage) -> None:
        """Transmit ``composed`` to its envelope recipients."""
        if self._smtp is None:
            raise TransportError(STAGE_SEND, message="SMTP session is not open")

        self._set_state(SessionState.SENDING)
        errors, response = await self._phase(
            STAGE_SEND,
            lambda: self._smtp.send_message(
                composed.message,
                sender=composed.sender,
                recipients=list(composed.recipients),
            ),
        )
        for recipient, (code, message) in (errors or {}).items():
            self.logger.warning("Recipient %s refused: %s %s", recipient, code, message)
        self.succeeded = True
        self.logger.debug("Server accepted message: %s", response)

    async def close(self) -> None:
        """Release the connection.

        A successful session ends with QUIT; any other path drops the
        connection at once.
        """
        smtp, self._smtp = self._smtp, None
        try:
            if smtp is not None and smtp.is_connected and self.succeeded:
                try:
                    await asyncio.wait_for(smtp.quit(), timeout=self.settings.timeout)
                except (aiosmtplib.SMTPException, OSError) as exc:
                    self.logger.warning("QUIT failed, closing connection: %s", exc)
        finally:
            # Reached on cancellation during QUIT too
            if smtp is not None and smtp.is_connected:
                smtp.close()
            self._set_state(SessionState.CLOSED)

    async def __aenter__(self) -> "SmtpSession":
        try:
            await self.open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class MailTransport:
    """Send composed messages, one new SMTP session per call.

    The transport holds no connection state between calls; retries are
    left to the caller, which can inspect ``TransportError.stage`` and
    ``TransportError.temporary``.
    """

    def __init__(self, on_state: Optional[Callable[[SessionState], None]] = None):
        self._on_state = on_state
        self.logger = get_logger("MailTransport")

    async def send(self, composed: ComposedMessage, settings: SmtpSettings) -> None:
        """Deliver ``composed`` through the server described by ``settings``.

        Raises:
            TransportTimeoutError: A phase exceeded ``settings.timeout_ms``.
            TransportError: Connection, authentication or delivery failed.
        """
        async with SmtpSession(settings, on_state=self._on_state) as session:
            await session.send(composed)
        self.logger.info(
            "Message sent via %s:%s to %s",
            settings.host,
            settings.port,
            ", ".join(composed.recipients),
        )

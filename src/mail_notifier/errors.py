# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exceptions raised along the compose-and-deliver pipeline.

Every exception is terminal for the current send. Each one carries a
machine readable ``code`` so callers can report or branch on it without
matching message text.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import aiosmtplib

TEMPORARY_PATTERNS = (
    "421",
    "450",
    "451",
    "452",
    "timeout",
    "timed out",
    "connection refused",
    "connection reset",
    "temporarily unavailable",
    "try again",
)


class MailNotifierError(RuntimeError):
    """Base class for all mail notifier failures."""

    code = "mail_notifier_error"


class TemplateNotFoundError(MailNotifierError):
    """The named template resource does not exist in the bundle."""

    code = "template_not_found"

    def __init__(self, template_uri: str):
        super().__init__(f"Template not found: {template_uri}")
        self.template_uri = template_uri


class TemplateRenderError(MailNotifierError):
    """A template or dynamic field could not be expanded."""

    code = "template_render_error"

    def __init__(self, message: str, template_uri: Optional[str] = None):
        super().__init__(message)
        self.template_uri = template_uri


class UndefinedVariableError(TemplateRenderError):
    """A ``{{ name }}`` expression references a variable missing from the context."""

    code = "undefined_variable"

    def __init__(self, name: Optional[str], message: Optional[str] = None):
        super().__init__(message or f"Undefined variable: {name}")
        self.name = name


class AttachmentResolutionError(MailNotifierError):
    """An attachment or embedded image URI could not be dereferenced."""

    code = "attachment_resolution"

    def __init__(self, uri: str, reason: Optional[str] = None):
        detail = f": {reason}" if reason else ""
        super().__init__(f"Unable to resolve attachment {uri}{detail}")
        self.uri = uri


class InvalidAddressError(MailNotifierError):
    """An address token is not a valid RFC 2822 mailbox."""

    code = "invalid_address"

    def __init__(self, raw: str, reason: Optional[str] = None):
        super().__init__(reason or f"Invalid email address: {raw!r}")
        self.raw = raw


def classify_smtp_error(exc: BaseException) -> tuple[bool, Optional[int]]:
    """Classify an SMTP failure as temporary or permanent.

    Returns:
        tuple: (is_temporary, smtp_code)
            - is_temporary: True when a later attempt may succeed
            - smtp_code: The SMTP reply code if available, None otherwise
    """
    smtp_code = None
    if isinstance(exc, aiosmtplib.SMTPResponseException):
        smtp_code = exc.code

    if smtp_code:
        if 400 <= smtp_code < 500:
            return True, smtp_code
        if 500 <= smtp_code < 600:
            return False, smtp_code

    # Network failures and timeouts (aiosmtplib's own included) are transient
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, OSError)):
        return True, smtp_code

    error_msg = str(exc).lower()
    if any(pattern in error_msg for pattern in TEMPORARY_PATTERNS):
        return True, smtp_code
    return False, smtp_code


class TransportError(MailNotifierError):
    """SMTP delivery failed at a given stage (``connect``, ``auth`` or ``send``).

    ``temporary`` tells the caller whether a retry is worth attempting; the
    transport itself never retries.
    """

    code = "transport_error"

    def __init__(self, stage: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.stage = stage
        self.cause = cause
        if cause is not None:
            self.temporary, self.smtp_code = classify_smtp_error(cause)
        else:
            self.temporary, self.smtp_code = False, None
        if message is None:
            message = f"SMTP {stage} failed"
            if cause is not None:
                message = f"{message}: {cause}"
            if self.smtp_code:
                message = f"{message} (SMTP {self.smtp_code})"
        super().__init__(message)


class TransportTimeoutError(TransportError):
    """An SMTP phase exceeded the session timeout."""

    code = "transport_timeout"

    def __init__(self, stage: str, timeout_ms: Optional[int] = None, cause: Optional[BaseException] = None):
        message = f"SMTP {stage} timed out"
        if timeout_ms:
            message = f"{message} after {timeout_ms} ms"
        super().__init__(stage, cause, message=message)
        self.timeout_ms = timeout_ms
        self.temporary = True

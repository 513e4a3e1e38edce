# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models describing a single email notification.

Models:
    - TransportStrategy: SMTP connection security mode
    - AttachmentRef: Declared attachment or embedded image
    - SendRequest: Complete, immutable configuration of one send
    - SmtpSettings: Connection subset of a SendRequest
    - ResolvedAttachment: Attachment content loaded in memory
    - ComposedMessage: Built message ready for delivery
"""

from __future__ import annotations

from dataclasses import dataclass
from email.message import EmailMessage, Message
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_SESSION_TIMEOUT_MS = 1000


class TransportStrategy(str, Enum):
    """Connection security used for the SMTP session.

    Attributes:
        PLAIN: Unencrypted SMTP.
        STARTTLS: Plain connection upgraded with STARTTLS after EHLO.
        SMTPS: Implicit TLS from the first byte (usually port 465).
    """

    PLAIN = "PLAIN"
    STARTTLS = "STARTTLS"
    SMTPS = "SMTPS"

    @classmethod
    def _missing_(cls, value: object) -> "TransportStrategy | None":
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class AttachmentRef(BaseModel):
    """Attachment declared in the task configuration.

    Attributes:
        uri: Opaque handle into external storage.
        name: File name shown to the recipient (eg. 'report.pdf').
        content_type: MIME type of the content.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    uri: Annotated[str, Field(min_length=1, description="Storage URI of the content")]
    name: Annotated[str, Field(min_length=1, description="Display name of the attachment")]
    content_type: Annotated[
        str,
        Field(default=DEFAULT_CONTENT_TYPE, description="MIME type of the attachment"),
    ]

    @field_validator("content_type", mode="before")
    @classmethod
    def default_content_type(cls, v: Any) -> Any:
        """Treat an explicit null or blank content type as the default."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_CONTENT_TYPE
        return v


class SmtpSettings(BaseModel):
    """SMTP server coordinates and credentials for one session."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str
    port: Annotated[int, Field(gt=0)]
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    strategy: TransportStrategy = TransportStrategy.SMTPS
    timeout_ms: Annotated[int, Field(default=DEFAULT_SESSION_TIMEOUT_MS, ge=0)]

    @property
    def timeout(self) -> float | None:
        """Timeout in seconds, or None when the session is unbounded."""
        if not self.timeout_ms:
            return None
        return self.timeout_ms / 1000.0


class SendRequest(BaseModel):
    """Immutable configuration of one email notification.

    Fields holding ``{{ }}`` expressions are rendered by the task before
    use, so address syntax is checked later by the composer, not here.

    Attributes:
        host: SMTP server host.
        port: SMTP server port.
        username: SMTP login; authentication is skipped when empty.
        password: SMTP password.
        transport_strategy: Connection security, SMTPS when left empty.
        session_timeout: Bound in milliseconds for connect, read and write.
        from_: Sender address (``from`` in configuration payloads).
        to: One or more recipients, ``;`` delimited.
        cc: Optional carbon copy recipients, ``;`` delimited.
        subject: Optional subject.
        html_body: Optional HTML body.
        attachments: Files offered for download, in display order.
        embedded_images: Images referenced from the HTML body via ``cid:name``.
        template_uri: Bundled template used as HTML body when set.
        template_variables: Variables available to the template.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    host: Annotated[str, Field(min_length=1)]
    port: Annotated[int, Field(gt=0)]
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    transport_strategy: TransportStrategy = TransportStrategy.SMTPS
    session_timeout: Annotated[int, Field(default=DEFAULT_SESSION_TIMEOUT_MS, ge=0)]

    from_: Annotated[str, Field(alias="from", min_length=1)]
    to: Annotated[str, Field(min_length=1)]
    cc: str | None = None
    subject: str | None = None
    html_body: str | None = None
    attachments: tuple[AttachmentRef, ...] = ()
    embedded_images: tuple[AttachmentRef, ...] = ()

    template_uri: str | None = None
    template_variables: dict[str, Any] | None = None

    @field_validator("transport_strategy", mode="before")
    @classmethod
    def default_strategy(cls, v: Any) -> Any:
        """An unspecified strategy behaves as SMTPS."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return TransportStrategy.SMTPS
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("session_timeout", mode="before")
    @classmethod
    def default_timeout(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_SESSION_TIMEOUT_MS
        return v

    @field_validator("attachments", "embedded_images", mode="before")
    @classmethod
    def empty_sequence(cls, v: Any) -> Any:
        """Absent and empty attachment lists are equivalent."""
        if v is None:
            return ()
        return v

    @field_validator("cc", mode="before")
    @classmethod
    def blank_cc(cls, v: Any) -> Any:
        """Absent and blank Cc are equivalent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("host", "from_", "to")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    def smtp_settings(self) -> SmtpSettings:
        """Return the connection settings of this request."""
        return SmtpSettings(
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            strategy=self.transport_strategy,
            timeout_ms=self.session_timeout,
        )


@dataclass(frozen=True)
class ResolvedAttachment:
    """Attachment content read fully into memory."""

    name: str
    content_type: str
    content: bytes

    @property
    def maintype(self) -> str:
        return self._split()[0]

    @property
    def subtype(self) -> str:
        return self._split()[1]

    @property
    def params(self) -> dict[str, str]:
        """Content-Type parameters such as ``charset``.

        Empty when the declared type is unusable and the part falls back
        to application/octet-stream.
        """
        declared = self.content_type.split(";", 1)[0].strip().lower()
        if ";" not in self.content_type or "/".join(self._split()) != declared:
            return {}
        header = Message()
        header["Content-Type"] = self.content_type
        return {key: value for key, value in header.get_params(failobj=[])[1:] if key}

    def _split(self) -> tuple[str, str]:
        # Parameters such as "; charset=utf-8" are not part of the type
        mime = self.content_type.split(";", 1)[0].strip().lower()
        if "/" not in mime:
            return ("application", "octet-stream")
        maintype, subtype = mime.split("/", 1)
        # A leaf part can never carry a multipart type
        if not maintype or not subtype or maintype == "multipart":
            return ("application", "octet-stream")
        return maintype, subtype


@dataclass(frozen=True)
class ComposedMessage:
    """A fully built message and its SMTP envelope.

    Attributes:
        message: The MIME message.
        sender: Envelope sender (bare address).
        recipients: Envelope recipients, To addresses first then Cc.
    """

    message: EmailMessage
    sender: str
    recipients: tuple[str, ...]

    def __getitem__(self, header: str) -> Any:
        return self.message[header]

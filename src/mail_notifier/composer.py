# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Build the outbound MIME message of a notification.

The resulting structure is::

    multipart/mixed                      (only when attachments exist)
    ├── multipart/alternative
    │   ├── text/plain                   fixed fallback text
    │   └── text/html                    or multipart/related with images
    │       └── image/*                  Content-ID: <name>, inline
    └── application/pdf ...              attachments, in declared order

Addresses are ``;`` delimited lists; each token is validated against the
RFC 2822 mailbox syntax (``addr-spec`` or ``Name <addr-spec>``).
"""

from __future__ import annotations

import re
from email.headerregistry import Address
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Optional, Sequence

from .errors import InvalidAddressError
from .logger import get_logger
from .models import ComposedMessage, ResolvedAttachment, SendRequest

PLAIN_TEXT_FALLBACK = "Please view this email in a modern email client!"
ADDRESS_DELIMITER = ";"

_ATEXT = r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]"
_DOT_ATOM = rf"{_ATEXT}+(?:\.{_ATEXT}+)*"
_QUOTED_STRING = r'"(?:[^"\\\r\n]|\\.)*"'
_DOMAIN_LITERAL = r"\[[^\[\]\\\r\n]*\]"
ADDR_SPEC_PATTERN = re.compile(
    rf"^(?:{_DOT_ATOM}|{_QUOTED_STRING})@(?:{_DOT_ATOM}|{_DOMAIN_LITERAL})$"
)
_PHRASE_FORBIDDEN = re.compile(r'[<>@,;:\\"\[\]\r\n]')


def parse_mailbox(token: str) -> Address:
    """Parse one ``addr-spec`` or ``Display Name <addr-spec>`` token.

    Raises:
        InvalidAddressError: The token is not a valid mailbox.
    """
    token = token.strip()
    display_name = ""
    addr = token

    if token.endswith(">"):
        start = token.rfind("<")
        if start == -1:
            raise InvalidAddressError(token)
        display_name = token[:start].strip()
        addr = token[start + 1 : -1].strip()
        if display_name.startswith('"') and display_name.endswith('"') and len(display_name) >= 2:
            display_name = display_name[1:-1].replace('\\"', '"').replace("\\\\", "\\")
        elif _PHRASE_FORBIDDEN.search(display_name):
            raise InvalidAddressError(token)

    if not ADDR_SPEC_PATTERN.match(addr):
        raise InvalidAddressError(token)

    try:
        return Address(display_name=display_name, addr_spec=addr)
    except (ValueError, IndexError, TypeError) as exc:
        raise InvalidAddressError(token, f"Invalid email address {token!r}: {exc}") from exc


def parse_address_list(raw: Optional[str]) -> list[Address]:
    """Split a ``;`` delimited address list and validate every token.

    Blank tokens (``"a@x.com; "``) are ignored. Fails on the first
    malformed token.
    """
    if raw is None:
        return []
    return [
        parse_mailbox(token)
        for token in raw.split(ADDRESS_DELIMITER)
        if token.strip()
    ]


class MessageComposer:
    """Assemble a :class:`ComposedMessage` from a rendered request.

    No network or disk access happens here; all attachment content must
    already be resolved.
    """

    def __init__(self, plain_text: str = PLAIN_TEXT_FALLBACK):
        self._plain_text = plain_text
        self.logger = get_logger("MessageComposer")

    def compose(
        self,
        req: SendRequest,
        attachments: Sequence[ResolvedAttachment] = (),
        embedded_images: Sequence[ResolvedAttachment] = (),
    ) -> ComposedMessage:
        """Build the message for ``req``.

        Raises:
            InvalidAddressError: Sender, To or Cc hold a malformed address,
                To is empty or more than one sender is given.
        """
        senders = parse_address_list(req.from_)
        if len(senders) != 1:
            raise InvalidAddressError(req.from_, f"Expected exactly one sender address, got {req.from_!r}")
        sender = senders[0]

        to_addresses = parse_address_list(req.to)
        if not to_addresses:
            raise InvalidAddressError(req.to, "At least one 'to' address is required")
        cc_addresses = parse_address_list(req.cc)

        msg = EmailMessage()
        msg["From"] = sender
        msg["To"] = to_addresses
        if cc_addresses:
            msg["Cc"] = cc_addresses
        msg["Subject"] = _single_line(req.subject or "")
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid(domain=sender.domain or None)
        msg["Return-Receipt-To"] = sender.addr_spec
        msg["Disposition-Notification-To"] = sender.addr_spec

        msg.set_content(self._plain_text)
        msg.add_alternative(req.html_body or "", subtype="html")

        if embedded_images:
            html_part = msg.get_payload()[1]
            for image in embedded_images:
                html_part.add_related(
                    image.content,
                    maintype=image.maintype,
                    subtype=image.subtype,
                    cid=f"<{image.name}>",
                    disposition="inline",
                    filename=image.name,
                    params=image.params,
                )

        for attachment in attachments:
            msg.add_attachment(
                attachment.content,
                maintype=attachment.maintype,
                subtype=attachment.subtype,
                filename=attachment.name,
                params=attachment.params,
            )

        recipients = tuple(addr.addr_spec for addr in (*to_addresses, *cc_addresses))
        self.logger.debug(
            "Composed message %s for %d recipient(s), %d attachment(s), %d embedded image(s)",
            msg["Message-ID"],
            len(recipients),
            len(attachments),
            len(embedded_images),
        )
        return ComposedMessage(message=msg, sender=sender.addr_spec, recipients=recipients)


def _single_line(value: str) -> str:
    return " ".join(value.splitlines())

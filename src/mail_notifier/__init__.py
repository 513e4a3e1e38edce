# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Email notification task for workflow engines.

Given rendered configuration (SMTP server, recipients, subject, HTML body,
attachments) the task composes one multipart message and delivers it over
SMTP:

- Optional HTML body from a bundled template
- ``{{ }}`` rendering of every dynamic field
- Attachments and embedded images resolved from external storage
- PLAIN, STARTTLS or SMTPS sessions with a bounded timeout

Example:
    Sending a notification::

        from mail_notifier import MailSendTask, SendRequest

        request = SendRequest.model_validate({
            "host": "smtp.example.com",
            "port": 465,
            "from": "noreply@example.com",
            "to": "ops@example.com; dev@example.com",
            "subject": "Flow {{ flow }} finished",
            "html_body": "<p>Done</p>",
        })
        await MailSendTask().run(request, {"flow": "nightly"})
"""

from .attachments import AttachmentResolver, StorageDereferencer
from .composer import MessageComposer, parse_address_list
from .errors import (
    AttachmentResolutionError,
    InvalidAddressError,
    MailNotifierError,
    TemplateNotFoundError,
    TemplateRenderError,
    TransportError,
    TransportTimeoutError,
    UndefinedVariableError,
)
from .models import (
    AttachmentRef,
    ComposedMessage,
    ResolvedAttachment,
    SendRequest,
    SmtpSettings,
    TransportStrategy,
)
from .rendering import JinjaRenderer, Renderer
from .task import MailSendTask, run_sync, send_mail
from .templates import TemplateExpander
from .transport import MailTransport, SessionState, SmtpSession

__version__ = "0.1.0"

__all__ = [
    "AttachmentRef",
    "AttachmentResolutionError",
    "AttachmentResolver",
    "ComposedMessage",
    "InvalidAddressError",
    "JinjaRenderer",
    "MailNotifierError",
    "MailSendTask",
    "MailTransport",
    "MessageComposer",
    "Renderer",
    "ResolvedAttachment",
    "SendRequest",
    "SessionState",
    "SmtpSession",
    "SmtpSettings",
    "StorageDereferencer",
    "TemplateExpander",
    "TemplateNotFoundError",
    "TemplateRenderError",
    "TransportError",
    "TransportStrategy",
    "TransportTimeoutError",
    "UndefinedVariableError",
    "parse_address_list",
    "run_sync",
    "send_mail",
]

# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Mail notification task: render, resolve, compose and send.

The task runs one send per invocation:

1. When ``template_uri`` is set, the bundled template is expanded and
   becomes the HTML body (otherwise ``html_body`` is used).
2. Every dynamic field is rendered against the invocation context.
3. Attachments and embedded images are resolved from storage.
4. The message is composed and handed to a fresh SMTP session.

Any failure aborts the invocation before anything is transmitted and
propagates to the caller unchanged.

Example:
    Running the task from a flow::

        task = MailSendTask(dereference=StorageDereferencer(base_dir="/data"))
        await task.run(request, context={"execution": {"id": "abc"}})
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

from .attachments import AttachmentResolver, Dereference, StorageDereferencer
from .composer import MessageComposer
from .errors import MailNotifierError, TransportError
from .logger import get_logger
from .models import AttachmentRef, SendRequest
from .prometheus import MailMetrics
from .rendering import JinjaRenderer, Renderer, render_optional
from .templates import TemplateExpander
from .transport import MailTransport


class MailSendTask:
    """Compose one email from a :class:`SendRequest` and send it over SMTP.

    Collaborators are injected so a host engine can provide its own
    renderer and storage; defaults make the task usable standalone.
    """

    def __init__(
        self,
        renderer: Optional[Renderer] = None,
        dereference: Optional[Dereference] = None,
        transport: Optional[MailTransport] = None,
        expander: Optional[TemplateExpander] = None,
        composer: Optional[MessageComposer] = None,
        metrics: Optional[MailMetrics] = None,
        parallel_attachments: bool = False,
        attachment_timeout: Optional[float] = None,
    ):
        self.renderer = renderer or JinjaRenderer()
        self.expander = expander or TemplateExpander(renderer=self.renderer)
        self.resolver = AttachmentResolver(
            dereference or StorageDereferencer(),
            parallel=parallel_attachments,
            timeout=attachment_timeout,
        )
        self.composer = composer or MessageComposer()
        self.transport = transport or MailTransport()
        self.metrics = metrics
        self.logger = get_logger("MailSendTask")

    def _html_body(self, req: SendRequest) -> Optional[str]:
        if req.template_uri:
            return self.expander.expand(req.template_uri, req.template_variables or {})
        return req.html_body

    def _render_refs(
        self, refs: tuple[AttachmentRef, ...], context: Mapping[str, Any]
    ) -> list[AttachmentRef]:
        return [
            AttachmentRef(
                uri=self.renderer.render(ref.uri, context),
                name=self.renderer.render(ref.name, context),
                content_type=self.renderer.render(ref.content_type, context),
            )
            for ref in refs
        ]

    def render_request(self, req: SendRequest, context: Mapping[str, Any]) -> SendRequest:
        """Return a copy of ``req`` with every dynamic field rendered.

        Raises:
            TemplateNotFoundError: The configured template does not exist.
            TemplateRenderError: A field references an undefined variable.
        """
        html_body = self._html_body(req)
        update = {
            "host": self.renderer.render(req.host, context),
            "username": render_optional(self.renderer, req.username, context),
            "password": render_optional(self.renderer, req.password, context),
            "from_": self.renderer.render(req.from_, context),
            "to": self.renderer.render(req.to, context),
            "cc": render_optional(self.renderer, req.cc, context),
            "subject": render_optional(self.renderer, req.subject, context),
            "html_body": render_optional(self.renderer, html_body, context),
            "attachments": self._render_refs(req.attachments, context),
            "embedded_images": self._render_refs(req.embedded_images, context),
            "template_uri": None,
            "template_variables": None,
        }
        # Re-validate so rendered values obey the same invariants
        data = req.model_dump(by_alias=False)
        data.update(update)
        return SendRequest.model_validate(data)

    async def run(self, req: SendRequest, context: Optional[Mapping[str, Any]] = None) -> None:
        """Execute the task once.

        Raises:
            MailNotifierError: Any rendering, resolution, address or
                transport failure; nothing has been sent in that case.
        """
        context = context or {}
        self.logger.debug("Sending email to %s ...", req.to)
        try:
            rendered = self.render_request(req, context)
            attachments = await self.resolver.resolve(rendered.attachments)
            embedded_images = await self.resolver.resolve(rendered.embedded_images)
            composed = self.composer.compose(rendered, attachments, embedded_images)
            await self.transport.send(composed, rendered.smtp_settings())
        except MailNotifierError as exc:
            if self.metrics is not None:
                stage = exc.stage if isinstance(exc, TransportError) else "prepare"
                self.metrics.inc_error(stage)
            self.logger.error("Email to %s not sent: %s", req.to, exc)
            raise

        if self.metrics is not None:
            self.metrics.inc_sent()
        self.logger.info("Email sent to %s", rendered.to)


async def send_mail(
    request: SendRequest | Mapping[str, Any],
    context: Optional[Mapping[str, Any]] = None,
    **collaborators: Any,
) -> None:
    """Validate ``request`` if needed and run a :class:`MailSendTask` once."""
    if not isinstance(request, SendRequest):
        request = SendRequest.model_validate(request)
    await MailSendTask(**collaborators).run(request, context)


def run_sync(
    request: SendRequest | Mapping[str, Any],
    context: Optional[Mapping[str, Any]] = None,
    **collaborators: Any,
) -> None:
    """Blocking wrapper around :func:`send_mail` for synchronous callers."""
    asyncio.run(send_mail(request, context, **collaborators))

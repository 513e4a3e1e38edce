# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTML body templates bundled with the package.

A template is looked up by name inside the ``mail_notifier.resources``
package, read as UTF-8 and expanded with the task variables. Templates
are re-read on every call.

Example:
    Expanding the bundled notification layout::

        expander = TemplateExpander()
        html = expander.expand("mail-template.html", {"title": "Flow failed"})
"""

from __future__ import annotations

from importlib import resources
from pathlib import PurePosixPath
from typing import Any, Mapping, Optional

from .errors import TemplateNotFoundError, TemplateRenderError
from .logger import get_logger
from .rendering import JinjaRenderer, Renderer

DEFAULT_TEMPLATE_PACKAGE = "mail_notifier.resources"


class TemplateExpander:
    """Load a bundled template and render it into an HTML body."""

    def __init__(
        self,
        renderer: Optional[Renderer] = None,
        package: str = DEFAULT_TEMPLATE_PACKAGE,
    ):
        self._renderer = renderer or JinjaRenderer()
        self._package = package
        self.logger = get_logger("TemplateExpander")

    def load(self, template_uri: str) -> str:
        """Return the raw text of ``template_uri``.

        Raises:
            TemplateNotFoundError: The name is not a resource of the package.
        """
        parts = PurePosixPath(template_uri.replace("\\", "/")).parts
        if not parts or parts[0] == "/" or ".." in parts:
            raise TemplateNotFoundError(template_uri)

        try:
            resource = resources.files(self._package).joinpath(*parts)
            if not resource.is_file():
                raise TemplateNotFoundError(template_uri)
            return resource.read_text(encoding="utf-8")
        except (ModuleNotFoundError, FileNotFoundError, NotADirectoryError) as exc:
            raise TemplateNotFoundError(template_uri) from exc

    def expand(
        self,
        template_uri: Optional[str],
        variables: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Render ``template_uri`` with ``variables``.

        Returns an empty string when no template is configured.

        Raises:
            TemplateNotFoundError: The template does not exist.
            TemplateRenderError: A variable is undefined or an expression fails.
        """
        if not template_uri:
            return ""

        source = self.load(template_uri)
        self.logger.debug("Expanding template %s", template_uri)
        try:
            return self._renderer.render(source, variables or {})
        except TemplateRenderError as exc:
            if exc.template_uri is None:
                exc.template_uri = template_uri
            raise

# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Variable rendering for dynamic task fields.

Any field of a notification may hold ``{{ expression }}`` placeholders that
are expanded against the invocation context before use. The host engine
usually provides its own renderer; :class:`JinjaRenderer` is the default
implementation for standalone use.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Protocol

import jinja2
from jinja2.sandbox import SandboxedEnvironment

from .errors import TemplateRenderError, UndefinedVariableError

_UNDEFINED_NAME = re.compile(r"'([^']+)' is undefined")


class Renderer(Protocol):
    """Synchronous ``{{ }}`` expression renderer."""

    def render(self, template: str, context: Mapping[str, Any]) -> str:
        """Render ``template`` against ``context``.

        Raises:
            UndefinedVariableError: A referenced variable is missing.
            TemplateRenderError: The expression cannot be evaluated.
        """
        ...


class JinjaRenderer:
    """Renderer backed by a sandboxed jinja2 environment.

    Undefined variables are errors, never empty strings, so a typo in a
    recipient expression cannot silently drop a recipient.
    """

    def __init__(self, environment: Optional[jinja2.Environment] = None):
        self._env = environment or SandboxedEnvironment(
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def render(self, template: str, context: Mapping[str, Any]) -> str:
        try:
            return self._env.from_string(template).render(dict(context))
        except jinja2.UndefinedError as exc:
            match = _UNDEFINED_NAME.search(str(exc))
            name = match.group(1) if match else None
            raise UndefinedVariableError(name, str(exc)) from exc
        except jinja2.TemplateError as exc:
            raise TemplateRenderError(f"Unable to render expression: {exc}") from exc
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise TemplateRenderError(f"Expression failed: {exc}") from exc


def render_optional(
    renderer: Renderer, value: Optional[str], context: Mapping[str, Any]
) -> Optional[str]:
    """Render ``value`` unless it is None."""
    if value is None:
        return None
    return renderer.render(value, context)

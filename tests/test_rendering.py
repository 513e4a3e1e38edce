"""Tests for the jinja2 backed field renderer."""

import pytest

from mail_notifier.errors import TemplateRenderError, UndefinedVariableError
from mail_notifier.rendering import JinjaRenderer, render_optional


def test_render_substitutes_variables():
    renderer = JinjaRenderer()
    assert renderer.render("Hi {{name}}", {"name": "Bob"}) == "Hi Bob"


def test_render_nested_values():
    renderer = JinjaRenderer()
    context = {"execution": {"id": "abc", "state": "FAILED"}}
    assert renderer.render("{{ execution.id }} is {{ execution.state }}", context) == "abc is FAILED"


def test_plain_text_untouched():
    assert JinjaRenderer().render("alice@example.com", {}) == "alice@example.com"


def test_no_autoescape():
    assert JinjaRenderer().render("{{ body }}", {"body": "<b>x</b>"}) == "<b>x</b>"


def test_undefined_variable_raises():
    renderer = JinjaRenderer()
    with pytest.raises(UndefinedVariableError) as exc_info:
        renderer.render("{{ recipient }}@example.com", {})
    assert exc_info.value.name == "recipient"
    assert exc_info.value.code == "undefined_variable"


def test_undefined_variable_is_render_error():
    with pytest.raises(TemplateRenderError):
        JinjaRenderer().render("{{ missing }}", {})


def test_syntax_error_raises_render_error():
    with pytest.raises(TemplateRenderError):
        JinjaRenderer().render("{{ unclosed", {})


def test_failing_expression_raises_render_error():
    with pytest.raises(TemplateRenderError):
        JinjaRenderer().render("{{ 1 / zero }}", {"zero": 0})


def test_render_optional_keeps_none():
    assert render_optional(JinjaRenderer(), None, {}) is None
    assert render_optional(JinjaRenderer(), "{{ a }}", {"a": 1}) == "1"

"""Tests for CLI commands and helper functions."""

import json

import click
import pytest
from click.testing import CliRunner

from mail_notifier import cli
from mail_notifier.cli import main, parse_vars, run_async


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from reconfiguring the root logger during tests."""
    levels = []
    monkeypatch.setattr(cli, "configure_logging", levels.append)
    return levels


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text(
        """
[smtp]
host = smtp.example.com
port = 465
user = mailer
password = secret
from = noreply@example.com

[logging]
level = warning
"""
    )
    return str(path)


@pytest.fixture
def request_file(tmp_path):
    def factory(payload):
        path = tmp_path / "request.json"
        path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
        return str(path)

    return factory


class TestHelperFunctions:
    def test_run_async(self):
        async def async_func():
            return 42

        assert run_async(async_func()) == 42

    def test_parse_vars(self):
        assert parse_vars(("name=Bob", "count=3", "tags=[1, 2]", "expr=a=b")) == {
            "name": "Bob",
            "count": 3,
            "tags": [1, 2],
            "expr": "a=b",
        }

    def test_parse_vars_requires_equals(self):
        with pytest.raises(click.BadParameter):
            parse_vars(("oops",))


class TestSendCommand:
    def test_send_success(self, smtp_factory, config_file, request_file, quiet_logging):
        path = request_file({"to": "{{ owner }}@example.com", "subject": "Flow {{ flow }}"})
        result = CliRunner().invoke(
            main, ["--config", config_file, "send", path, "--var", "owner=alice", "--var", "flow=nightly"]
        )

        assert result.exit_code == 0, result.output
        assert "Email sent" in result.output
        smtp = smtp_factory.last
        assert smtp.hostname == "smtp.example.com"
        assert smtp.login_credentials == ("mailer", "secret")
        message, sender, recipients = smtp.sent[0]
        assert sender == "noreply@example.com"
        assert recipients == ["alice@example.com"]
        assert message["Subject"] == "Flow nightly"
        assert quiet_logging == ["WARNING"]

    def test_log_level_option_wins(self, smtp_factory, config_file, request_file, quiet_logging):
        path = request_file({"to": "a@x.com"})
        result = CliRunner().invoke(main, ["--log-level", "DEBUG", "--config", config_file, "send", path])
        assert result.exit_code == 0, result.output
        assert quiet_logging == ["DEBUG"]

    def test_request_overrides_config(self, smtp_factory, config_file, request_file):
        path = request_file({"to": "a@x.com", "host": "other.example.com", "port": 2525, "transport_strategy": "PLAIN"})
        result = CliRunner().invoke(main, ["--config", config_file, "send", path])
        assert result.exit_code == 0, result.output
        assert smtp_factory.last.hostname == "other.example.com"
        assert smtp_factory.last.port == 2525
        assert smtp_factory.last.use_tls is False

    def test_template_option(self, smtp_factory, config_file, request_file):
        path = request_file({"to": "a@x.com", "template_variables": {"title": "Nightly report"}})
        result = CliRunner().invoke(
            main, ["--config", config_file, "send", path, "--template", "mail-template.html"]
        )
        assert result.exit_code == 0, result.output
        html = smtp_factory.last.sent[0][0].get_body(preferencelist=("html",)).get_content()
        assert "Nightly report" in html

    def test_template_option_uses_vars(self, smtp_factory, config_file, request_file):
        path = request_file({"to": "a@x.com"})
        result = CliRunner().invoke(
            main,
            ["--config", config_file, "send", path, "--template", "mail-template.html", "--var", "title=Hi"],
        )
        assert result.exit_code == 0, result.output
        html = smtp_factory.last.sent[0][0].get_body(preferencelist=("html",)).get_content()
        assert "<h2>Hi</h2>" in html

    def test_template_variables_from_file_win(self, smtp_factory, config_file, request_file):
        path = request_file({"to": "a@x.com", "template_variables": {"title": "From file"}})
        result = CliRunner().invoke(
            main,
            ["--config", config_file, "send", path, "--template", "mail-template.html", "--var", "title=From cli"],
        )
        assert result.exit_code == 0, result.output
        html = smtp_factory.last.sent[0][0].get_body(preferencelist=("html",)).get_content()
        assert "<h2>From file</h2>" in html

    def test_transport_failure(self, smtp_factory, config_file, request_file, auth_error):
        smtp_factory.behaviour["login_error"] = auth_error
        result = CliRunner().invoke(main, ["--config", config_file, "send", request_file({"to": "a@x.com"})])
        assert result.exit_code == 1
        assert "transport_error" in result.output

    def test_undefined_variable(self, smtp_factory, config_file, request_file):
        path = request_file({"to": "{{ owner }}@example.com"})
        result = CliRunner().invoke(main, ["--config", config_file, "send", path])
        assert result.exit_code == 1
        assert "undefined_variable" in result.output
        assert smtp_factory.created == []

    def test_invalid_request(self, smtp_factory, config_file, request_file):
        result = CliRunner().invoke(main, ["--config", config_file, "send", request_file({"subject": "no to"})])
        assert result.exit_code == 1
        assert "Invalid request" in result.output
        assert smtp_factory.created == []

    def test_invalid_json(self, config_file, request_file):
        result = CliRunner().invoke(main, ["--config", config_file, "send", request_file("{not json")])
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_non_object_json(self, config_file, request_file):
        result = CliRunner().invoke(main, ["--config", config_file, "send", request_file("[1, 2]")])
        assert result.exit_code == 1
        assert "JSON object" in result.output

    def test_missing_config(self, tmp_path, request_file):
        result = CliRunner().invoke(
            main, ["--config", str(tmp_path / "nope.ini"), "send", request_file({"to": "a@x.com"})]
        )
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestCheckAddress:
    def test_all_valid(self, config_file):
        result = CliRunner().invoke(main, ["--config", config_file, "check-address", "Ops <ops@example.com>; dev@example.com"])
        assert result.exit_code == 0, result.output
        assert "ops@example.com" in result.output
        assert "dev@example.com" in result.output
        assert "no" not in result.output.split()

    def test_invalid_token(self, config_file):
        result = CliRunner().invoke(main, ["--config", config_file, "check-address", "ok@x.com; broken"])
        assert result.exit_code == 1
        assert "broken" in result.output


class TestRenderTemplate:
    def test_renders_bundled_template(self, config_file):
        result = CliRunner().invoke(
            main,
            ["--config", config_file, "render-template", "mail-template.html", "--var", "title=Hello", "--var", 'details={"Run": 7}'],
        )
        assert result.exit_code == 0, result.output
        assert "<h2>Hello</h2>" in result.output
        assert "<strong>Run:</strong> 7" in result.output

    def test_unknown_template(self, config_file):
        result = CliRunner().invoke(main, ["--config", config_file, "render-template", "nope.html"])
        assert result.exit_code == 1
        assert "template_not_found" in result.output

# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for mail-notifier.

This module stands in for the workflow host when the task is run by
hand: it loads a JSON request, fills SMTP defaults from config.ini and
the environment, and runs a single send.

Usage:
    mail-notifier send request.json --var execution_id=42
    mail-notifier send request.json --template mail-template.html
    mail-notifier check-address "Ops <ops@example.com>; dev@example.com"
    mail-notifier render-template mail-template.html --var title=Hello

Example:
    $ cat request.json
    {"to": "{{ owner }}@example.com", "subject": "Flow {{ flow }} failed",
     "html_body": "<p>See logs</p>",
     "attachments": [{"uri": "/var/flows/out.log", "name": "out.log",
                      "content_type": "text/plain"}]}
    $ MAIL_NOTIFIER_SMTP_HOST=smtp.example.com MAIL_NOTIFIER_SMTP_PORT=465 \\
        MAIL_NOTIFIER_FROM=noreply@example.com \\
        mail-notifier send request.json --var owner=alice --var flow=nightly
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .attachments import StorageDereferencer
from .composer import parse_mailbox
from .config import apply_defaults, load_settings
from .errors import InvalidAddressError, MailNotifierError
from .logger import configure_logging
from .models import SendRequest
from .task import MailSendTask
from .templates import TemplateExpander

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {escape(message)}")


def parse_vars(values: tuple[str, ...]) -> dict[str, Any]:
    """Turn ``key=value`` pairs into a dict; values are JSON when they parse as JSON."""
    variables: dict[str, Any] = {}
    for item in values:
        if "=" not in item:
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--var")
        key, raw = item.split("=", 1)
        try:
            variables[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            variables[key.strip()] = raw
    return variables


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: from config, INFO).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.ini (default: $MAIL_NOTIFIER_CONFIG or ./config.ini).",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None, config_path: str | None) -> None:
    """Compose and send email notifications over SMTP."""
    try:
        settings = load_settings(config_path)
    except (FileNotFoundError, ValueError) as exc:
        print_error(str(exc))
        sys.exit(1)
    configure_logging(log_level or settings["log_level"])
    ctx.obj = settings


@main.command("send")
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--var", "variables", multiple=True, help="Render context variable as key=value.")
@click.option("--template", "template_uri", default=None, help="Bundled template used as HTML body.")
@click.pass_obj
def send_cmd(settings: dict[str, Any], request_file: str, variables: tuple[str, ...], template_uri: str | None) -> None:
    """Send the email described by REQUEST_FILE (JSON)."""
    context = parse_vars(variables)
    try:
        payload = json.loads(Path(request_file).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print_error(f"Invalid JSON in {request_file}: {exc}")
        sys.exit(1)
    if not isinstance(payload, dict):
        print_error(f"{request_file} must contain a JSON object")
        sys.exit(1)

    payload = apply_defaults(payload, settings)
    if template_uri:
        payload["template_uri"] = template_uri
    if payload.get("template_uri") and isinstance(payload.get("template_variables") or {}, dict):
        # --var values also feed the template; values from the file win
        payload["template_variables"] = {**context, **(payload.get("template_variables") or {})}

    try:
        request = SendRequest.model_validate(payload)
    except ValidationError as exc:
        print_error(f"Invalid request:\n{exc}")
        sys.exit(1)

    task = MailSendTask(
        dereference=StorageDereferencer(base_dir=settings.get("attachment_base_dir")),
        parallel_attachments=bool(settings.get("attachment_parallel")),
        attachment_timeout=settings.get("attachment_timeout"),
    )
    try:
        run_async(task.run(request, context))
    except MailNotifierError as exc:
        print_error(f"[{exc.code}] {exc}")
        sys.exit(1)

    print_success(f"Email sent to {request.to}")


@main.command("check-address")
@click.argument("addresses")
def check_address_cmd(addresses: str) -> None:
    """Validate a ';' delimited ADDRESSES list."""
    table = Table(title="Addresses")
    table.add_column("Token")
    table.add_column("Display name")
    table.add_column("Address")
    table.add_column("Valid")

    failed = False
    for token in addresses.split(";"):
        if not token.strip():
            continue
        try:
            address = parse_mailbox(token)
        except InvalidAddressError:
            failed = True
            table.add_row(escape(token.strip()), "", "", "[red]no[/red]")
            continue
        table.add_row(escape(token.strip()), escape(address.display_name), address.addr_spec, "[green]yes[/green]")

    console.print(table)
    if failed:
        sys.exit(1)


@main.command("render-template")
@click.argument("template_uri")
@click.option("--var", "variables", multiple=True, help="Template variable as key=value.")
def render_template_cmd(template_uri: str, variables: tuple[str, ...]) -> None:
    """Print the bundled TEMPLATE_URI expanded with --var values."""
    try:
        html = TemplateExpander().expand(template_uri, parse_vars(variables))
    except MailNotifierError as exc:
        print_error(f"[{exc.code}] {exc}")
        sys.exit(1)
    click.echo(html)


if __name__ == "__main__":
    main()

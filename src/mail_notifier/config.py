# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Process-level defaults for the command line entry point.

Settings come from an INI file with environment variables as fallbacks.
They only fill fields a request leaves unset; every send still carries
its own complete, immutable :class:`~mail_notifier.models.SendRequest`.
"""

from __future__ import annotations

import configparser
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from .logger import get_logger
from .models import DEFAULT_SESSION_TIMEOUT_MS

logger = get_logger("MailNotifierConfig")

ENV_PREFIX = "MAIL_NOTIFIER_"

# settings key -> SendRequest field it provides a default for
REQUEST_DEFAULTS = {
    "smtp_host": "host",
    "smtp_port": "port",
    "smtp_user": "username",
    "smtp_password": "password",
    "smtp_strategy": "transport_strategy",
    "smtp_timeout_ms": "session_timeout",
    "mail_from": "from",
}


def _env(name: str) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}")


def load_settings(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Load configuration from an INI file (default: config.ini) with environment variables as fallbacks.

    Environment variables (all prefixed with MAIL_NOTIFIER_):
      MAIL_NOTIFIER_CONFIG - Path to config.ini file (default: config.ini)
      MAIL_NOTIFIER_LOG_LEVEL - Logging level (default: INFO)
      MAIL_NOTIFIER_SMTP_HOST / _SMTP_PORT / _SMTP_USER / _SMTP_PASSWORD
      MAIL_NOTIFIER_SMTP_STRATEGY - PLAIN, STARTTLS or SMTPS (default: SMTPS)
      MAIL_NOTIFIER_SMTP_TIMEOUT_MS - Session timeout (default: 1000)
      MAIL_NOTIFIER_FROM - Default sender address
      MAIL_NOTIFIER_ATTACHMENT_BASE_DIR - Directory confining file attachments
      MAIL_NOTIFIER_ATTACHMENT_TIMEOUT - Seconds allowed per attachment fetch
      MAIL_NOTIFIER_ATTACHMENT_PARALLEL - Fetch attachments concurrently

    Config file sections/keys:
      [smtp] host, port, user, password, strategy, timeout_ms, from
      [attachments] base_dir, timeout, parallel
      [logging] level

    Raises:
        FileNotFoundError: ``config_path`` was given explicitly and does not exist.
    """
    explicit = config_path is not None
    path = Path(config_path or _env("CONFIG") or "config.ini").expanduser()
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path)
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {path}")
    else:
        logger.debug("No config file at %s, using environment only", path)

    def get(section: str, option: str, fallback: Optional[str] = None) -> Optional[str]:
        if parser.has_option(section, option):
            return parser.get(section, option)
        return fallback

    def get_int(section: str, option: str, fallback: Optional[str] = None, default: Optional[int] = None) -> Optional[int]:
        value = get(section, option, fallback)
        if value is None or not str(value).strip():
            return default
        return int(value)

    def get_float(section: str, option: str, fallback: Optional[str] = None, default: Optional[float] = None) -> Optional[float]:
        value = get(section, option, fallback)
        if value is None or not str(value).strip():
            return default
        return float(value)

    def get_bool(section: str, option: str, fallback: Optional[str] = None, default: Optional[bool] = None) -> Optional[bool]:
        value = get(section, option, fallback)
        if value is None:
            return default
        normalized = str(value).strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
        return default

    settings: dict[str, Any] = {
        "smtp_host": get("smtp", "host", _env("SMTP_HOST")),
        "smtp_port": get_int("smtp", "port", _env("SMTP_PORT")),
        "smtp_user": get("smtp", "user", _env("SMTP_USER")),
        "smtp_password": get("smtp", "password", _env("SMTP_PASSWORD")),
        "smtp_strategy": get("smtp", "strategy", _env("SMTP_STRATEGY")),
        "smtp_timeout_ms": get_int(
            "smtp", "timeout_ms", _env("SMTP_TIMEOUT_MS"), default=DEFAULT_SESSION_TIMEOUT_MS
        ),
        "mail_from": get("smtp", "from", _env("FROM")),
        "attachment_base_dir": get("attachments", "base_dir", _env("ATTACHMENT_BASE_DIR")),
        "attachment_timeout": get_float("attachments", "timeout", _env("ATTACHMENT_TIMEOUT")),
        "attachment_parallel": get_bool(
            "attachments", "parallel", _env("ATTACHMENT_PARALLEL"), default=False
        ),
        "log_level": (get("logging", "level", _env("LOG_LEVEL")) or "INFO").upper(),
    }

    base_dir = settings["attachment_base_dir"]
    if isinstance(base_dir, str):
        settings["attachment_base_dir"] = os.path.expanduser(base_dir.strip()) or None
    password = settings.get("smtp_password")
    if isinstance(password, str):
        settings["smtp_password"] = password.strip() or None
    return settings


def apply_defaults(payload: Mapping[str, Any], settings: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``payload`` completed with the SMTP defaults from ``settings``.

    Values present in the payload always win, including explicit nulls for
    optional fields.
    """
    merged = dict(payload)
    for setting_key, field in REQUEST_DEFAULTS.items():
        value = settings.get(setting_key)
        if value is None:
            continue
        aliases = (field, "from_") if field == "from" else (field,)
        if not any(alias in merged for alias in aliases):
            merged[field] = value
    return merged

# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Logging utilities for the mail notifier.

Handlers, level and format are configured once by the entry point
(see :func:`mail_notifier.cli.main`) through ``logging.basicConfig()``;
library modules only ask for a named logger.

Example:
    Typical usage in a module::

        from mail_notifier.logger import get_logger

        logger = get_logger("MailTransport")
        logger.debug("Connecting to %s:%s", host, port)
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "MailNotifier") -> logging.Logger:
    """Return the logger bound to ``name``.

    Args:
        name: The logger name. Defaults to "MailNotifier".

    Returns:
        A ``logging.Logger`` instance; no handler is attached here.
    """
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        force=True,
    )

import logging

from mail_notifier.logger import LOG_FORMAT, configure_logging, get_logger


def test_get_logger_reuses_existing_logger():
    logger = get_logger("TestLogger")
    handler_count = len(logger.handlers)

    same_logger = get_logger("TestLogger")
    assert logger is same_logger
    assert len(same_logger.handlers) == handler_count


def test_default_logger_name():
    assert get_logger().name == "MailNotifier"


def test_configure_logging_sets_level_and_format():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging("debug")
        assert root.level == logging.DEBUG
        assert root.handlers[0].formatter._fmt == LOG_FORMAT

        configure_logging("not-a-level")
        assert root.level == logging.INFO
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

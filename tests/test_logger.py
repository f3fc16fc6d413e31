"""Tests for the logger factory."""

import logging
import sys

from minirag.src.utils.logger import get_logger


class TestGetLogger:
    def test_single_stderr_handler(self):
        logger = get_logger("minirag.tests.stderr")

        assert len(logger.handlers) == 1
        assert logger.handlers[0].stream is sys.stderr
        assert logger.propagate is False

    def test_repeated_calls_do_not_stack_handlers(self):
        get_logger("minirag.tests.repeat")
        logger = get_logger("minirag.tests.repeat")
        assert len(logger.handlers) == 1

    def test_explicit_level_override(self):
        logger = get_logger("minirag.tests.level", level=logging.ERROR)
        assert logger.level == logging.ERROR

"""Tests for utility functions."""

import logging
from pathlib import Path

import pytest

from photo_ratings.utils import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_level_from_string(self, restore_root_logger):
        setup_logging("debug")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1

    def test_log_file(self, restore_root_logger, temp_dir: Path):
        log_file = temp_dir / "logs" / "ratings.log"

        setup_logging(logging.INFO, log_file=log_file)
        logging.getLogger("photo_ratings.test").info("hello %s", "file")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert "hello file" in log_file.read_text()

    def test_quiets_third_party_loggers(self, restore_root_logger):
        setup_logging("DEBUG")

        assert logging.getLogger("PIL").level == logging.WARNING
        assert logging.getLogger("werkzeug").level == logging.WARNING

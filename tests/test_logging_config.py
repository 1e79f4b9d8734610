"""
Tests for secure logging - verifies sensitive data masking and setup.
"""
import io
import logging
from logging.handlers import RotatingFileHandler

import pytest

from resource_api.logging_config import (
    DATE_FORMAT,
    LOG_FILENAME,
    LOG_FORMAT,
    SensitiveDataFormatter,
    get_log_path,
    setup_logging,
)


@pytest.fixture
def test_logger():
    """Create a test logger with SensitiveDataFormatter."""
    logger = logging.getLogger("test_resource_api_logging")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(SensitiveDataFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    return logger, stream


@pytest.fixture
def restore_root_logger():
    """Remove the handlers installed by setup_logging() and restore the level."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, SensitiveDataFormatter):
            handler.close()
            root.removeHandler(handler)
    root.setLevel(level)


class TestSensitiveDataFormatter:
    """Test cases for sensitive data masking in logs."""

    def test_mask_token(self, test_logger):
        """Test masking token=value patterns."""
        logger, stream = test_logger
        logger.info("Request with token=abc123xyz789")
        output = stream.getvalue()

        assert "abc123xyz789" not in output
        assert "token=***" in output

    def test_mask_bearer_header(self, test_logger):
        """Test masking Bearer credentials."""
        logger, stream = test_logger
        logger.warning("Rejected header Bearer s3cr3t-value")
        output = stream.getvalue()

        assert "s3cr3t-value" not in output
        assert "Bearer ***" in output

    def test_mask_jwt(self, test_logger):
        """Test masking standalone JWTs."""
        logger, stream = test_logger
        logger.info("jwt eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiIxIn0.sig_part")
        output = stream.getvalue()

        assert "eyJhbGciOiJIUzI1NiJ9" not in output
        assert "[JWT:***]" in output

    def test_mask_query_param(self, test_logger):
        """Test masking sensitive query parameters in URLs."""
        logger, stream = test_logger
        logger.info("GET /api/v1/notes?limit=5&api_key=zzz999")
        output = stream.getvalue()

        assert "zzz999" not in output
        assert "limit=5" in output

    def test_mask_email(self, test_logger):
        """Test partial masking of email addresses."""
        logger, stream = test_logger
        logger.info("Created by alice.smith@example.com")
        output = stream.getvalue()

        assert "alice.smith@" not in output
        assert "al***@example.com" in output

    def test_plain_message_unchanged(self, test_logger):
        """Test that ordinary request log lines are left alone."""
        logger, stream = test_logger
        logger.info("GET /api/v1/notes -> 200 (1.2 ms)")

        assert "GET /api/v1/notes -> 200 (1.2 ms)" in stream.getvalue()


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_get_log_path_creates_directory(self, tmp_path):
        """Test that the log directory is created."""
        log_dir = tmp_path / "nested" / "logs"

        path = get_log_path(log_dir)

        assert log_dir.is_dir()
        assert path == log_dir / LOG_FILENAME

    def test_setup_installs_masking_handlers(self, tmp_path, restore_root_logger):
        """Test that file and console handlers share the masking formatter."""
        setup_logging(logging.DEBUG, log_dir=tmp_path)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)
        assert all(isinstance(h.formatter, SensitiveDataFormatter) for h in root.handlers)

    def test_setup_is_idempotent(self, tmp_path, restore_root_logger):
        """Test that calling setup twice does not duplicate handlers."""
        setup_logging(log_dir=tmp_path)
        setup_logging(log_dir=tmp_path)

        assert len(logging.getLogger().handlers) == 2

    def test_log_file_written_masked(self, tmp_path, restore_root_logger):
        """Test that records reach the rotating file masked."""
        setup_logging(log_dir=tmp_path)
        logging.getLogger("resource_api.test").info("password=hunter2")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = (tmp_path / LOG_FILENAME).read_text(encoding="utf-8")
        assert "hunter2" not in content
        assert "password=***" in content

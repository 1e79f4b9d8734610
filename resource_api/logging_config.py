"""
Logging Configuration Module.

Provides centralized logging setup with a rotating file handler and a
console handler. Credentials that end up in log lines (Authorization
headers, API keys, tokens, passwords) are masked before they are written.
"""

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional
import sys


# --- Constants ---
LOG_FILENAME = "resource_api.log"
MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# --- Sensitive Data Patterns ---
SENSITIVE_PATTERNS = [
    # Key-value pairs with sensitive keys (password=xxx, token: xxx, etc.)
    (
        re.compile(
            r"(password|secret|token|access_token|refresh_token|api_key|apikey|"
            r"authorization|cookie|credential|private_key)\s*[:=]\s*['\"]?([^'\"\s&]+)['\"]?",
            re.IGNORECASE
        ),
        r"\1=***"
    ),
    # Bearer / Basic credentials in headers
    (
        re.compile(r"\b(Bearer|Basic)(\s+)([A-Za-z0-9\-_\.=+/]+)", re.IGNORECASE),
        r"\1\2***"
    ),
    # JWT tokens standalone (eyJ...)
    (
        re.compile(r"\b(eyJ[A-Za-z0-9\-_]+\.eyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+)\b"),
        r"[JWT:***]"
    ),
    # URL query parameters with sensitive names
    (
        re.compile(
            r"([?&])(token|key|secret|password|api_key|apikey|access_token)=([^&\s]+)",
            re.IGNORECASE
        ),
        r"\1\2=***"
    ),
    # Email addresses (partial mask: first 2 chars + *** + @domain)
    (
        re.compile(r"\b([a-zA-Z0-9._%+-]{2})([a-zA-Z0-9._%+-]*)(@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b"),
        r"\1***\3"
    ),
]


class SensitiveDataFormatter(logging.Formatter):
    """
    Log formatter that masks sensitive data.

    Masks:
    - Passwords, tokens, secrets, API keys
    - Authorization header credentials
    - Sensitive URL query parameters
    - Email addresses (partial masking)
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record, masking any sensitive data."""
        masked_msg = super().format(record)
        for pattern, replacement in SENSITIVE_PATTERNS:
            masked_msg = pattern.sub(replacement, masked_msg)
        return masked_msg


def get_log_path(log_dir: Optional[Path] = None) -> Path:
    """
    Get the path for log files.

    Defaults to the ``logs`` directory of the project root.
    """
    logs_dir = log_dir or Path(__file__).resolve().parent.parent / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir / LOG_FILENAME


def setup_logging(log_level: int = logging.INFO, log_dir: Optional[Path] = None) -> None:
    """
    Configure application logging with rotation.

    Args:
        log_level: The logging level (default: logging.INFO).
        log_dir: Directory for the log file (default: <project>/logs).
    """
    log_file_path = get_log_path(log_dir)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()

    formatter = SensitiveDataFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # --- File Handler (Rotating) ---
    file_handler = RotatingFileHandler(
        filename=str(log_file_path),
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.info(f"Logging initialized. Log file: {log_file_path}")

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

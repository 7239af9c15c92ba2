# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Logging configuration with credential redaction.

Library modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves.  Entry points (the ``s3lite`` CLI, or an
application embedding the client) call ``configure_logging()``.

``SecretFilter`` keeps AWS secret access keys and request signatures out
of log output.  ``S3Client`` registers its secret key on construction;
``Signature=...`` values in Authorization headers are always masked.

Usage:
    # In entry points
    from s3lite.logging import configure_logging
    configure_logging(level=logging.DEBUG)

    # In library modules
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Listing objects in %s", bucket)
"""

import logging
import re
import threading
from typing import ClassVar


REDACTED = "[REDACTED]"

_SIGNATURE_RE = re.compile(r"(Signature=)[0-9a-fA-F]+")


def _redact(text: str, pattern: re.Pattern[str] | None) -> str:
    if pattern is not None:
        text = pattern.sub(REDACTED, text)
    return _SIGNATURE_RE.sub(rf"\g<1>{REDACTED}", text)


class SecretFilter(logging.Filter):
    """Logging filter that redacts credentials from log output.

    Secrets registered with ``register_secret()`` are replaced with
    ``[REDACTED]`` wherever they appear in the message or its string
    arguments.  Request signatures are masked unconditionally.

    Example:
        SecretFilter.register_secret("wJalrXUtnFEMI/K7MDENG")
        handler.addFilter(SecretFilter())
        logger.info("secret=%s", "wJalrXUtnFEMI/K7MDENG")
        # Output: "secret=[REDACTED]"
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact secrets in place.

        Args:
            record: The log record to filter.

        Returns:
            Always True (record is never suppressed, only modified).
        """
        pattern = self._pattern
        record.msg = _redact(str(record.msg), pattern)
        if isinstance(record.args, tuple):
            record.args = tuple(
                _redact(arg, pattern) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Register a secret to be redacted from all log output.

        Args:
            secret: The secret string to redact. Empty strings are ignored.
        """
        if not secret:
            return
        with cls._lock:
            if secret not in cls._secrets:
                cls._secrets.add(secret)
                cls._rebuild_pattern()

    @classmethod
    def clear_secrets(cls) -> None:
        """Clear all registered secrets. Primarily for testing."""
        with cls._lock:
            cls._secrets.clear()
            cls._pattern = None

    @classmethod
    def _rebuild_pattern(cls) -> None:
        """Rebuild the compiled regex pattern. Caller holds ``_lock``."""
        if cls._secrets:
            # Longest first so overlapping secrets are fully masked
            ordered = sorted(cls._secrets, key=len, reverse=True)
            escaped = [re.escape(s) for s in ordered]
            cls._pattern = re.compile("|".join(escaped))
        else:
            cls._pattern = None


def configure_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
    add_secret_filter: bool = True,
) -> None:
    """Configure the root logger for an entry point.

    Replaces any existing root handlers with a single stream handler.

    Args:
        level: The logging level (e.g., logging.INFO, logging.DEBUG).
        format_string: Custom format string. If None, uses default format.
        add_secret_filter: Whether to add the SecretFilter to redact secrets.
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string))

    if add_secret_filter:
        handler.addFilter(SecretFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)

    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(
        logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module.

    Args:
        name: The logger name, typically __name__.

    Returns:
        A logger instance.
    """
    return logging.getLogger(name)

"""Logging helpers: stderr handler and credential redaction."""

import logging
import re
import sys

LOGGER_NAME = "databasin_cli"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_REDACTED_VALUE = "[REDACTED]"
_BEARER_PATTERN = re.compile(r"(?i)\b(bearer)\s+([A-Za-z0-9._~+/=-]+)")
_SENSITIVE_KEY_VALUE_PATTERN = re.compile(
    r"""(?ix)
    (?P<key>(?<![A-Za-z0-9_])(?:access[_-]?token|refresh[_-]?token|api[_-]?key|password|secret|token))
    (?P<key_quote>["']?)
    (?P<separator>\s*[:=]\s*)
    (?P<quote>["']?)
    (?P<value>[^\s,;&"'}\]]+)
    """
)


def redact(message: str) -> str:
    """Mask bearer credentials and token-like key/value pairs in a message."""
    message = _BEARER_PATTERN.sub(lambda m: f"{m.group(1)} {_REDACTED_VALUE}", message)
    return _SENSITIVE_KEY_VALUE_PATTERN.sub(
        lambda m: f"{m.group('key')}{m.group('key_quote')}{m.group('separator')}{m.group('quote')}{_REDACTED_VALUE}",
        message,
    )


class RedactingFilter(logging.Filter):
    """Rewrite log records so credentials never reach the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:
            # Leave malformed records for logging's own error reporting.
            return True
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(debug: bool = False) -> logging.Logger:
    """
    Configure the package logger.

    Output goes to stderr so JSON on stdout stays pipe-safe. Calling this
    again only adjusts the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    if not any(getattr(h, "_databasin_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RedactingFilter())
        handler._databasin_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
        logger.propagate = False

    return logger

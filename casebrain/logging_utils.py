"""
Logging helpers: credential masking and a single place to configure handlers.
"""

from __future__ import annotations

import logging
import re

_URL_CREDENTIALS_RE = re.compile(
    r"(?P<scheme>[a-z][a-z0-9+.\-]*://)(?P<user>[^:/@\s]+):(?P<password>[^@\s]+)@",
    re.IGNORECASE,
)
_BEARER_RE = re.compile(r"(?i)(bearer\s+)[a-z0-9\-._~+/]+=*")

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def mask_secrets(text: str) -> str:
    if not text:
        return text
    masked = _URL_CREDENTIALS_RE.sub(r"\g<scheme>\g<user>:***@", text)
    return _BEARER_RE.sub(r"\1***", masked)


class LogSanitizer(logging.Filter):
    """Mask connection-string passwords and bearer tokens in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        cleaned = mask_secrets(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def install_log_sanitizer() -> None:
    """Attach the sanitizer to the root logger and its handlers (idempotent)."""
    root = logging.getLogger()
    if not any(isinstance(f, LogSanitizer) for f in root.filters):
        root.addFilter(LogSanitizer())
    for handler in root.handlers:
        if not any(isinstance(f, LogSanitizer) for f in handler.filters):
            handler.addFilter(LogSanitizer())


def configure_logging(level: str | int = "INFO") -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT)
    logging.getLogger("casebrain").setLevel(level)
    install_log_sanitizer()

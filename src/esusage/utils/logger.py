"""Logging setup with Unicode fallback for terminal compatibility.

All esusage modules log through the ``esusage`` logger namespace. Records
propagate to the host application's handlers; a rich handler on stderr is
only attached by an explicit configure_logging() call.
"""
import sys
import locale
import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# Unicode to ASCII mapping for terminals that can't encode UTF-8
ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '→': '->',
    '←': '<-',
    '⇒': '=>',
    '…': '...',
    '•': '*',
    '─': '-',
    '│': '|',
}

LOGGER_NAMESPACE = "esusage"


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if hasattr(sys.stderr, 'encoding') and sys.stderr.encoding:
        return sys.stderr.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (ValueError, LookupError):
        return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if terminal doesn't support UTF-8.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Sanitized text safe for current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)
    return sanitized


class SanitizingFilter(logging.Filter):
    """Rewrite record messages so they survive non-UTF-8 terminals."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = sanitize_for_terminal(record.msg)
        return True


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a rich handler to the esusage namespace (idempotent).

    Args:
        level: Log level name. Defaults to the configured ESUSAGE_LOG_LEVEL.

    Returns:
        The namespace root logger

    Raises:
        ValueError: If the level name is unknown
    """
    root = logging.getLogger(LOGGER_NAMESPACE)

    if level is None:
        from ..config import get_config
        level = get_config().log_level
    root.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(
            console=Console(stderr=True, legacy_windows=not is_utf8_capable()),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.addFilter(SanitizingFilter())
        root.addHandler(handler)

    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the esusage namespace.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        logging.Logger
    """
    if not name.startswith(LOGGER_NAMESPACE):
        name = f"{LOGGER_NAMESPACE}.{name}"
    return logging.getLogger(name)

"""
Logging for Vaultwrap.

The clients log through ``vaultwrap.*`` loggers and attach structured context
with ``log_with_context``. Secret values are never logged.

``setup_logging`` is an opt-in helper for applications: it routes the
``vaultwrap`` logger and the Azure SDK loggers it drives to one handler and
redacts credentials the SDK may echo (bearer tokens, client secrets,
connection-string keys). It never touches the root logger.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional, Tuple

LIBRARY_LOGGER_NAME = "vaultwrap"

# The SDK logs request/response headers through azure.core at INFO.
SDK_LOGGER_NAMES: Tuple[str, ...] = ("azure.core", "azure.identity", "azure.keyvault")

REDACTED = "***REDACTED***"


class SensitiveDataFilter(logging.Filter):
    """Redact credentials from the rendered log message."""

    PATTERNS = [
        (re.compile(r'(Authorization["\']?\s*[:=]\s*["\']?)(?:Bearer\s+)?[^\s"\',]+', re.IGNORECASE), r'\1' + REDACTED),
        (re.compile(r'(Bearer\s+)[A-Za-z0-9\-._~+/]+=*', re.IGNORECASE), r'\1' + REDACTED),
        (re.compile(r'(client_(?:secret|assertion)["\']?\s*[:=]\s*["\']?)[^\s"\'&]+', re.IGNORECASE), r'\1' + REDACTED),
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)[^\s"\'&;]+', re.IGNORECASE), r'\1' + REDACTED),
        (re.compile(r'((?:AccountKey|SharedAccessKey)=)[^;\s]+', re.IGNORECASE), r'\1' + REDACTED),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern, replacement in self.PATTERNS:
            redacted = pattern.sub(replacement, redacted)

        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


class VaultwrapFormatter(logging.Formatter):
    """
    Render records as one JSON object per line, or as text.

    The ``context`` mapping added by ``log_with_context`` is emitted as a
    nested object in JSON mode and as ``key=value`` pairs in text mode.
    """

    def __init__(self, structured: bool = True):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.structured = structured

    def format(self, record: logging.LogRecord) -> str:
        context: Dict[str, Any] = getattr(record, "context", None) or {}

        if not self.structured:
            line = f"{self.formatTime(record, self.datefmt)} [{record.levelname}] {record.name}: {record.getMessage()}"
            if context:
                line += " " + " ".join(f"{key}={value}" for key, value in context.items())
            if record.exc_info:
                line += "\n" + self.formatException(record.exc_info)
            return line

        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: Optional[str] = None,
    sdk_level: str = "WARNING",
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """
    Route Vaultwrap and Azure SDK logging to a single handler.

    Calling this again replaces the handler installed by the previous call.

    Args:
        level: Level for the ``vaultwrap`` logger
        format_type: "json" or "text"
        log_file: Write to this file instead of the stream
        sdk_level: Level for the Azure SDK loggers, which are noisy at INFO
        stream: Stream for console output, stderr when omitted

    Returns:
        The installed handler
    """
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream or sys.stderr)

    handler.setFormatter(VaultwrapFormatter(structured=format_type == "json"))
    handler.addFilter(SensitiveDataFilter())
    handler._vaultwrap_handler = True

    levels = {LIBRARY_LOGGER_NAME: level}
    levels.update((name, sdk_level) for name in SDK_LOGGER_NAMES)

    for name, logger_level in levels.items():
        target = logging.getLogger(name)
        for existing in [h for h in target.handlers if getattr(h, "_vaultwrap_handler", False)]:
            target.removeHandler(existing)
            existing.close()
        target.addHandler(handler)
        target.setLevel(logger_level.upper())
        target.propagate = False

    return handler


def setup_logging_from_config(config) -> logging.Handler:
    """
    Configure logging from a LoggingConfig instance.

    Args:
        config: vaultwrap.core.config_manager.LoggingConfig
    """
    return setup_logging(
        level=getattr(config.level, "value", config.level),
        format_type=config.format,
        log_file=config.file,
        sdk_level=getattr(config.sdk_level, "value", config.sdk_level),
    )


def get_logger(name: str) -> logging.Logger:
    """Return a logger, typically ``get_logger(__name__)``."""
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """
    Log a message with structured context.

    Args:
        logger: Logger instance
        level: Log level
        message: Log message
        **context: Names and flags describing the operation, never secret values
    """
    extra = {"context": context} if context else {}
    logger.log(level, message, extra=extra)

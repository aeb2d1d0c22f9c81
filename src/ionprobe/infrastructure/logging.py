from __future__ import annotations

import json
import logging
import sys
import uuid
from collections.abc import Iterable
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog
from structlog.typing import Processor

from ionprobe.config.settings import LOG_FORMAT_JSON, LoggingSettings

BoundLogger = structlog.stdlib.BoundLogger

REDACTED = "***"


class RedactingFormatter(logging.Formatter):
    """Formatter that masks registered secret values in the rendered line."""

    def __init__(self, fmt: str | None = None) -> None:
        super().__init__(fmt)
        self._secrets: set[str] = set()

    def add_secrets(self, values: Iterable[str | None]) -> None:
        for value in values:
            if not value:
                continue
            self._secrets.add(value)
            # JSON rendering escapes quotes and backslashes inside values
            escaped = json.dumps(value)[1:-1]
            if escaped != value:
                self._secrets.add(escaped)
            if repr(value)[1:-1] != value:
                self._secrets.add(repr(value)[1:-1])

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        for secret in sorted(self._secrets, key=len, reverse=True):
            rendered = rendered.replace(secret, REDACTED)
        return rendered


def _build_processors(json_logs: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def _configure_structlog(settings: LoggingSettings) -> None:
    json_logs = settings.format == LOG_FORMAT_JSON
    structlog.configure(
        processors=_build_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def _build_handler(
    level: int, handler: logging.Handler, formatter: logging.Formatter | None = None
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter or logging.Formatter("%(message)s"))
    return handler


def configure_logging(settings: LoggingSettings) -> None:
    """Route structlog output to stderr and, when configured, a rotating file.

    The file handler masks every value handed to :func:`register_secrets`;
    console output stays unredacted so ``--debug`` remains useful.
    """

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, RotatingFileHandler):
            handler.close()
    root_logger.setLevel(settings.level)

    console_handler = _build_handler(settings.level, logging.StreamHandler(sys.stderr))
    root_logger.addHandler(console_handler)

    if settings.file_path:
        file_handler = _build_handler(
            settings.level,
            RotatingFileHandler(
                settings.file_path,
                maxBytes=settings.max_bytes,
                backupCount=settings.backup_count,
                encoding="utf-8",
            ),
            RedactingFormatter("%(message)s"),
        )
        root_logger.addHandler(file_handler)

    _configure_structlog(settings)


def register_secrets(*values: str | None) -> None:
    """Mask *values* in every persisted log handler from now on."""

    for handler in logging.getLogger().handlers:
        formatter = handler.formatter
        if isinstance(formatter, RedactingFormatter):
            formatter.add_secrets(values)


def get_logger(name: str) -> BoundLogger:
    return structlog.get_logger(name)


def attach_run_context(
    logger: BoundLogger,
    *,
    run_id: str | None = None,
    **base_fields: Any,
) -> BoundLogger:
    bound = logger.bind(run_id=run_id or uuid.uuid4().hex[:12])
    extras = {key: value for key, value in base_fields.items() if value is not None}
    if extras:
        bound = bound.bind(**extras)
    return bound


def log_event(
    logger: BoundLogger,
    event: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    event_fields = {key: value for key, value in fields.items() if value is not None}
    logger.log(level, event, **event_fields)


__all__ = [
    "BoundLogger",
    "REDACTED",
    "RedactingFormatter",
    "attach_run_context",
    "configure_logging",
    "get_logger",
    "log_event",
    "register_secrets",
]

"""Structured logging setup using structlog.

The API server and the ingestion CLI share one processor chain.  Besides
the usual context vars, log level and timestamp, it tags every event with
``service="smartlens"`` and keeps document content out of the log stream:
byte payloads are replaced by their length and long strings (LLM errors,
OCR output echoed in exception text) are clipped to
:data:`MAX_FIELD_CHARS`.

Rendering is JSON when ``APP_ENV`` is ``"production"`` or ``json_output`` is
set, otherwise console output, coloured only when the stream is a terminal.
Standard-library ``logging`` goes through the same chain; chatty client
libraries are held at WARNING unless the level is DEBUG.
"""

import logging
import os
import sys
from typing import Any, TextIO

import structlog

SERVICE_NAME = "smartlens"

MAX_FIELD_CHARS = 500

# Loggers that emit one line per HTTP request, page or SQL statement.
_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "openai", "PIL", "multipart", "aiosqlite")

_PASSTHROUGH_KEYS = frozenset({"event", "timestamp", "level", "logger_name", "exception"})


def add_service_name(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def redact_document_content(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Replace raw bytes with their size and clip long string values."""
    for key, value in event_dict.items():
        if key in _PASSTHROUGH_KEYS:
            continue
        if isinstance(value, (bytes, bytearray)):
            event_dict[key] = f"<{len(value)} bytes>"
        elif isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
            event_dict[key] = f"{value[:MAX_FIELD_CHARS]}... [+{len(value) - MAX_FIELD_CHARS} chars]"
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and stdlib logging for SmartLens.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output.  When False, console rendering is
                     used unless APP_ENV is "production".
        stream: Where log lines go.  The API logs to stdout; the CLI passes
                stderr so stdout carries only the command's result.

    Returns:
        A configured structlog BoundLogger.
    """
    stream = stream or sys.stdout
    level = log_level.upper()
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_document_content,
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared_processors,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound with ``logger_name``.

    Configures logging with defaults on first use so that library code and
    tests can log without going through the application entry point.
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)

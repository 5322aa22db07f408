"""Structured logging setup shared by the CLI and the API server."""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

VERBOSITY_LEVELS = {-1: logging.WARNING, 0: logging.INFO, 1: logging.DEBUG}

# Model replies and chapter text can end up in error fields
CONSOLE_VALUE_LIMIT = 300


def resolve_level(verbosity: int = 0, level_name: Optional[str] = None) -> int:
    """Pick the console log level.

    ``-v``/``-q`` win; otherwise an explicit level name such as ``LOG_LEVEL``
    is used, falling back to INFO when it is not a known level.
    """
    if verbosity != 0 or not level_name:
        return VERBOSITY_LEVELS.get(verbosity, logging.INFO)
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def shorten_values(limit: int = CONSOLE_VALUE_LIMIT) -> structlog.types.Processor:
    """Build a processor that clips long string values for terminal output."""

    def processor(logger: Any, method_name: str, event_dict: dict) -> dict:
        for key, value in event_dict.items():
            if key != "event" and isinstance(value, str) and len(value) > limit:
                event_dict[key] = f"{value[:limit]}... ({len(value)} chars)"
        return event_dict

    return processor


def configure_logging(
    verbosity: int = 0,
    log_file: Optional[Path] = None,
    level_name: Optional[str] = None,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        verbosity: -1=quiet (WARNING), 0=normal (INFO), 1=verbose (DEBUG)
        log_file: Optional path for full JSON log lines, always at DEBUG
        level_name: Level from configuration, used when verbosity is 0
    """
    level = resolve_level(verbosity, level_name)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                shorten_values(),
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
            ],
        )
    )
    console_handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console_handler)
    # Root must pass DEBUG records through when a file wants them
    root.setLevel(logging.DEBUG if log_file else level)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        # Names stay readable in Hangul and kana
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(ensure_ascii=False),
                ],
            )
        )
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)

    for name in ("httpx", "httpcore", "openai", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)

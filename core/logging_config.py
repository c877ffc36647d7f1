"""
Structlog logging configuration
"""
import logging
import json
from logging.handlers import RotatingFileHandler
from pathlib import Path
import structlog
from structlog.processors import TimeStamper, add_log_level, JSONRenderer
from structlog.dev import ConsoleRenderer
from structlog.contextvars import merge_contextvars
from structlog.stdlib import ProcessorFormatter
from typing import Any, List

from core.config import settings


def get_renderer(colors: bool = True) -> Any:
    """Pick a renderer for the environment (Console in DEBUG, JSON otherwise).
    structlog passes default/sort_keys to the serializer, so accept kwargs.
    """
    if settings.DEBUG:
        return ConsoleRenderer(colors=colors)
    return _json_renderer()


def _json_renderer() -> JSONRenderer:
    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)
    return JSONRenderer(serializer=_dumps)


def _file_handlers(formatter_factory) -> List[logging.Handler]:
    """Rotating combined/error log files under LOG_DIR, when configured."""
    if not settings.LOG_DIR:
        return []
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    combined = RotatingFileHandler(
        log_dir / "combined.log",
        maxBytes=settings.LOG_FILE_MAX_BYTES,
        backupCount=settings.LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    errors = RotatingFileHandler(
        log_dir / "error.log",
        maxBytes=settings.LOG_FILE_MAX_BYTES,
        backupCount=settings.LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    errors.setLevel(logging.ERROR)
    for handler in (combined, errors):
        handler.setFormatter(formatter_factory(_json_renderer()))
    return [combined, errors]


def configure_logging() -> None:
    """Configure structlog and bridge stdlib logging into the same chain."""
    timestamper = TimeStamper(fmt="iso")

    shared_pre_chain: List[Any] = [
        merge_contextvars,
        add_log_level,
        timestamper,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_pre_chain,
            ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    def formatter_for(renderer: Any) -> ProcessorFormatter:
        return ProcessorFormatter(
            foreign_pre_chain=shared_pre_chain,
            processors=[
                ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )

    console = logging.StreamHandler()
    console.setFormatter(formatter_for(get_renderer()))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    for handler in _file_handlers(formatter_for):
        root.addHandler(handler)

    default_level = "DEBUG" if settings.DEBUG else "INFO"
    root.setLevel(settings.LOG_LEVEL or default_level)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger."""
    return structlog.get_logger(name)

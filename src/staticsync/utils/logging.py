"""Logging configuration and utilities."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, TYPE_CHECKING

import structlog
import colorlog
from structlog.typing import Processor

if TYPE_CHECKING:
    from ..core.reconciler import CycleReport


# Marker attribute for handlers installed by setup_logging
_HANDLER_MARK = "_staticsync_handler"


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """Set up logging configuration.

    Safe to call more than once: handlers installed by a previous call are
    replaced rather than duplicated.
    """
    from ..config.settings import get_settings

    settings = get_settings()

    level = (log_level or settings.logging.level).upper()
    format_type = log_format or settings.logging.format
    file_path = log_file or settings.logging.file_path

    root = logging.getLogger()
    root.setLevel(getattr(logging, level))
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    # Set up processors based on format
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format_type == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    # Configure structlog
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Set up file logging if specified
    if file_path:
        setup_file_logging(file_path, level)

    # Set up colored console logging
    setup_console_logging(level)


def setup_file_logging(file_path: str, level: str) -> None:
    """Set up file logging with rotation."""
    log_file = Path(file_path).expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setLevel(getattr(logging, level.upper()))
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    setattr(file_handler, _HANDLER_MARK, True)

    logging.getLogger().addHandler(file_handler)


def setup_console_logging(level: str) -> None:
    """Set up colored console logging."""
    console_handler = colorlog.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    console_formatter = colorlog.ColoredFormatter(
        "%(log_color)s%(levelname)-8s%(reset)s %(message)s",
        reset=True,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    )
    console_handler.setFormatter(console_formatter)
    setattr(console_handler, _HANDLER_MARK, True)

    logging.getLogger().addHandler(console_handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_execution_time(func):
    """Decorator to log function execution time."""
    import time
    import functools

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.monotonic()

        try:
            result = func(*args, **kwargs)
            logger.debug(
                "Function executed successfully",
                function=func.__qualname__,
                execution_time=f"{time.monotonic() - start_time:.4f}s"
            )
            return result
        except Exception as e:
            logger.error(
                "Function execution failed",
                function=func.__qualname__,
                execution_time=f"{time.monotonic() - start_time:.4f}s",
                error=str(e)
            )
            raise

    return wrapper


def log_cycle_report(
    report: "CycleReport",
    logger: Optional[structlog.stdlib.BoundLogger] = None
) -> None:
    """Render a reconciliation cycle report through the logger.

    Errors are logged as warnings, copies as info and no-ops as debug,
    followed by one summary line for the whole cycle.
    """
    from ..core.reconciler import OutcomeKind

    logger = logger or get_logger("staticsync.report")

    for outcome in report.outcomes:
        fields = {
            "cycle": report.cycle,
            "a": str(outcome.pair.a),
            "b": str(outcome.pair.b),
        }
        if outcome.kind == OutcomeKind.ERROR:
            logger.warning(
                "Pair failed",
                error=outcome.error.value if outcome.error else None,
                side=outcome.side.value if outcome.side else None,
                detail=outcome.detail,
                **fields
            )
        elif outcome.kind == OutcomeKind.NOOP:
            logger.debug("Pair settled", **fields)
        else:
            logger.info(
                "Pair copied",
                direction=outcome.kind.value,
                duration=f"{outcome.duration:.3f}s",
                **fields
            )

    logger.info("Cycle complete", **report.summary())

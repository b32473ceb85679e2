"""
Centralized logging configuration for the feedboard dashboard.

Console output is colored for development; JSON output is available for log
shipping. Provider calls and merges emit one record each with their metrics
attached as ``extra_data``, so both formats can show them.

Nothing is configured on import. The entry point calls ``setup_logging``.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytz

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s'
ERROR_FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-36s | %(funcName)s:%(lineno)d | %(message)s'

# Metric keys echoed on the console line, in this order
CONSOLE_METRIC_KEYS = ('page', 'providers', 'failed_providers', 'has_more', 'item_count', 'error')


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, pytz.UTC).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno,
        }

        extra = getattr(record, 'extra_data', None)
        if extra:
            log_entry['extra'] = extra
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored single-line console output with a short metrics suffix."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        line = (
            f"{color}[{self.formatTime(record, '%H:%M:%S')}] {record.levelname:8} "
            f"[{record.name.replace('feedboard.', ''):28}] {record.getMessage()}"
        )

        extra = getattr(record, 'extra_data', None)
        if extra:
            shown = [f"{key}={extra[key]}" for key in CONSOLE_METRIC_KEYS if extra.get(key) is not None]
            if shown:
                line += f" ({', '.join(shown)})"
        line += self.RESET

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


def _parse_level(log_level: str) -> int:
    level = logging.getLevelName((log_level or '').upper())
    if isinstance(level, int):
        return level
    logging.getLogger(__name__).warning(f"Unknown log level {log_level!r}; using INFO")
    return logging.INFO


def _file_handlers(log_path: Path, structured: bool) -> List[logging.Handler]:
    """Daily rotating main log (7 days kept) plus an errors-only log."""
    log_path.mkdir(parents=True, exist_ok=True)

    daily_handler = logging.handlers.TimedRotatingFileHandler(
        log_path / "feedboard.log",
        when='midnight',
        backupCount=7,
        encoding='utf-8'
    )
    daily_handler.setLevel(logging.DEBUG)
    daily_handler.setFormatter(StructuredFormatter() if structured else logging.Formatter(FILE_FORMAT))

    error_handler = logging.FileHandler(log_path / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(ERROR_FILE_FORMAT))

    return [daily_handler, error_handler]


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    enable_file_logging: bool = False,
    enable_structured_logging: bool = False
) -> None:
    """
    Configure the root logger for the dashboard.

    Args:
        log_level: Minimum level for the console (DEBUG, INFO, WARNING, ...)
        log_dir: Directory for log files (defaults to ./logs)
        enable_file_logging: Also write feedboard.log and errors.log
        enable_structured_logging: Emit JSON instead of colored text
    """
    level = _parse_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        StructuredFormatter() if enable_structured_logging else ColoredConsoleFormatter()
    )
    root_logger.addHandler(console_handler)

    if enable_file_logging:
        log_path = Path(log_dir) if log_dir else Path.cwd() / "logs"
        for handler in _file_handlers(log_path, enable_structured_logging):
            root_logger.addHandler(handler)

    configure_pipeline_loggers(log_level)


def configure_pipeline_loggers(log_level: str) -> None:
    """Per-component levels for the dashboard's loggers."""

    # Aggregator: fan-out, merge and sort summaries
    logging.getLogger('feedboard.pipeline.content_aggregator').setLevel(logging.INFO)

    # Provider adapters: one line per page fetched, warnings on failure
    for name in ('news_service', 'movie_service', 'social_service', 'provider_client'):
        logging.getLogger(f'feedboard.services.{name}').setLevel(logging.INFO)

    # Stores log every transition at DEBUG; only shown when asked for
    stores_logger = logging.getLogger('feedboard.state')
    stores_logger.setLevel(logging.DEBUG if (log_level or '').upper() == 'DEBUG' else logging.INFO)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class PerformanceTracker:
    """Times a block and logs its outcome. ``duration_ms`` is set on exit."""

    def __init__(self, operation_name: str, logger: Optional[logging.Logger] = None):
        self.operation_name = operation_name
        self.logger = logger or logging.getLogger(__name__)
        self._start: Optional[float] = None
        self.duration_ms = 0.0

    def __enter__(self):
        self._start = time.perf_counter()
        self.logger.debug(f"Starting: {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._start is not None:
            self.duration_ms = (time.perf_counter() - self._start) * 1000
            if exc_type:
                self.logger.error(f"Failed: {self.operation_name} ({self.duration_ms:.1f}ms) - {exc_val}")
            else:
                self.logger.debug(f"Completed: {self.operation_name} ({self.duration_ms:.1f}ms)")
        return False


def log_pipeline_metrics(
    logger: logging.Logger,
    stage: str,
    input_count: int,
    output_count: int,
    duration_ms: float,
    **extra_data
):
    """Summary of one merge: items in from providers, items out to the caller."""
    metrics: Dict[str, Any] = {
        'stage': stage,
        'input_count': input_count,
        'output_count': output_count,
        'dropped': max(input_count - output_count, 0),
        'duration_ms': round(duration_ms, 1),
        **extra_data
    }
    logger.info(f"{stage}: {input_count} -> {output_count} items ({duration_ms:.1f}ms)", extra={'extra_data': metrics})


def log_provider_call(
    logger: logging.Logger,
    provider: str,
    operation: str,
    item_count: int,
    elapsed_ms: float,
    error: Optional[str] = None,
    **extra_data
):
    """One adapter call inside a fan-out; failures at WARNING."""
    call = {
        'provider': provider,
        'operation': operation,
        'item_count': item_count,
        'elapsed_ms': round(elapsed_ms, 1),
        'error': error,
        **extra_data
    }
    if error:
        logger.warning(f"{provider}.{operation} failed after {elapsed_ms:.0f}ms", extra={'extra_data': call})
    else:
        logger.debug(f"{provider}.{operation}: {item_count} items in {elapsed_ms:.0f}ms", extra={'extra_data': call})

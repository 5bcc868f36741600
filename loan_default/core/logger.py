"""
Logging Utilities

Console/rotating-file setup for command-line runs, a per-run log file
attached for the duration of one pipeline run, and a context-prefixed
logger for the orchestrator.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import pandas as pd

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

QUIET_LOGGERS = ("numexpr", "urllib3")

_loggers: Dict[str, logging.Logger] = {}


def _formatter() -> logging.Formatter:
    return logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    quiet: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """
    Configure the root logger: stdout always, a rotating file if requested.

    Existing root handlers are replaced.

    Args:
        log_level: Level name for the root logger and its handlers
        log_file: Optional path of a rotating log file
        max_bytes: Rotation size of the log file
        backup_count: Number of rotated files kept
        quiet: Third-party loggers capped at WARNING
    """
    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(_formatter())
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(_formatter())
        root_logger.addHandler(file_handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def attach_run_log(path: Path) -> Tuple[logging.Handler, int]:
    """
    Mirror every record (DEBUG and up) into a run's log file.

    The root level is lowered to DEBUG while attached; console handlers
    keep their own levels.

    Returns:
        (handler, previous root level), to be passed to detach_run_log()
    """
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_formatter())
    root_logger = logging.getLogger()
    previous_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)
    return handler, previous_level


def detach_run_log(handler: logging.Handler, previous_level: int) -> None:
    """Remove a handler added by attach_run_log() and restore the root level."""
    root_logger = logging.getLogger()
    root_logger.removeHandler(handler)
    root_logger.setLevel(previous_level)
    handler.close()


def get_logger(name: str) -> logging.Logger:
    """Get or create a logger with the given name."""
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]


class PipelineLogger:
    """
    Logger that prefixes messages with the run context.

    The orchestrator sets ``run_id`` and ``profile`` once per run, so every
    line of a shared log can be traced back to its run.
    """

    def __init__(self, name: str):
        self.logger = get_logger(name)
        self._context: Dict[str, Any] = {}

    def set_context(self, **kwargs) -> None:
        self._context.update(kwargs)

    def clear_context(self) -> None:
        self._context = {}

    def _format_message(self, message: str) -> str:
        if not self._context:
            return message
        prefix = " ".join(f"{k}={v}" for k, v in self._context.items())
        return f"[{prefix}] {message}"

    def info(self, message: str, *args) -> None:
        self.logger.info(self._format_message(message), *args)

    def debug(self, message: str, *args) -> None:
        self.logger.debug(self._format_message(message), *args)

    def warning(self, message: str, *args) -> None:
        self.logger.warning(self._format_message(message), *args)

    def exception(self, message: str, *args) -> None:
        """Log at ERROR with the active traceback."""
        self.logger.exception(self._format_message(message), *args)

    def stage_start(self, stage: str) -> None:
        self.info(f"STAGE | {stage} started")

    def stage_complete(self, stage: str, duration: Optional[float] = None) -> None:
        if duration is None:
            self.info(f"STAGE | {stage} done")
        else:
            self.info(f"STAGE | {stage} done in {duration:.2f}s")

    def metric(self, name: str, value: Any) -> None:
        self.info(f"METRIC | {name}: {value}")

    def table_stats(self, name: str, df: pd.DataFrame) -> None:
        """Log the shape and missing-cell count of a table."""
        missing = int(df.isna().sum().sum())
        self.info(
            f"DATA | {name}: {len(df):,} rows, {len(df.columns)} columns, "
            f"{missing:,} missing cells"
        )

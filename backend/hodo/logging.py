"""
Logging for the Hodo backend.

Every module logs through ``get_logger(area)``. Console lines are colored by
area; the daily log file gets full timestamps plus whatever request context
was bound with ``bind_context``. Context travels explicitly with the request
rather than being discovered from the call stack.
"""

import logging
import sys
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

RESET = "\033[0m"
DIM = "\033[2m"

# area -> (ANSI color, prefix)
AREAS = {
    "main": ("\033[96m", "HODO.main"),
    "database": ("\033[94m", "HODO.database"),
    "migrations": ("\033[34m", "HODO.migrations"),
    "api.auth": ("\033[32m", "HODO.api.auth"),
    "api.tasks": ("\033[32m", "HODO.api.tasks"),
    "licensing": ("\033[95m", "HODO.licensing"),
    "licensing.gate": ("\033[35m", "HODO.licensing.gate"),
}
UNKNOWN_AREA = ("\033[37m", "HODO")

LEVEL_COLORS = {
    logging.DEBUG: DIM,
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1m\033[91m",
}

# Record attributes written to the log file when present, in this order
CONTEXT_FIELDS = ("trace_id", "user_id", "username")


@dataclass(frozen=True)
class RequestContext:
    """Per-request fields attached to every log line of that request."""
    trace_id: str
    user_id: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def new(cls) -> "RequestContext":
        return cls(trace_id=uuid.uuid4().hex[:12])

    def with_user(self, user_id: str, username: str) -> "RequestContext":
        return RequestContext(trace_id=self.trace_id, user_id=user_id, username=username)

    def as_extra(self) -> dict:
        return {name: getattr(self, name) for name in CONTEXT_FIELDS if getattr(self, name) is not None}


class _AreaFormatter(logging.Formatter):
    def __init__(self, area: str = "main"):
        super().__init__()
        self.area_color, self.area_prefix = AREAS.get(area, UNKNOWN_AREA)


class ColoredConsoleFormatter(_AreaFormatter):
    """[HODO.area] HH:MM:SS LEVEL    message (trace)"""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = (
            f"{self.area_color}[{self.area_prefix}]{RESET} "
            f"{DIM}{clock}{RESET} "
            f"{color}{record.levelname:<8}{RESET} {record.getMessage()}"
        )
        trace_id = getattr(record, "trace_id", None)
        if trace_id:
            line += f" {DIM}({trace_id}){RESET}"
        return line


class FileFormatter(_AreaFormatter):
    """TIMESTAMP [HODO.area] LEVEL: message key=value..."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        context = "".join(
            f" {name}={getattr(record, name)}"
            for name in CONTEXT_FIELDS
            if hasattr(record, name)
        )
        line = f"{stamp} [{self.area_prefix}] {record.levelname}: {record.getMessage()}{context}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextAdapter(logging.LoggerAdapter):
    """Merges the bound RequestContext into every record's ``extra``."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


class _HodoFileHandler(logging.FileHandler):
    """File handler owned by this module, replaced on every setup_logging call."""


# Shared daily log file, set once setup_logging has run
_file_handler: Optional[_HodoFileHandler] = None


def _detach_file_handlers(logger: logging.Logger) -> None:
    for handler in [h for h in logger.handlers if isinstance(h, _HodoFileHandler)]:
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    log_dir: Optional[Path] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Start writing the daily log file and route every area logger into it.

    Calling it again moves every area logger to the new file.

    Args:
        log_dir: Directory for log files, ``./logs`` when omitted
        console_level: Minimum level printed to stdout
        file_level: Minimum level written to the file

    Returns:
        The log directory actually used
    """
    global _file_handler

    directory = Path(log_dir) if log_dir else Path.cwd() / "logs"
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / datetime.now().strftime("hodo-%Y-%m-%d.log")

    _file_handler = _HodoFileHandler(log_path, encoding="utf-8")
    _file_handler.setLevel(file_level)
    _file_handler.setFormatter(FileFormatter("main"))

    # Third-party libraries log through the root logger
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    _detach_file_handlers(root)
    root.handlers.clear()
    root.addHandler(_file_handler)

    # Area loggers created at import time predate the file handler
    for name, existing in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(existing, logging.Logger) or not name.startswith("hodo."):
            continue
        _detach_file_handlers(existing)
        _attach_file_handler(existing, name[len("hodo."):])
        for handler in existing.handlers:
            if type(handler) is logging.StreamHandler:
                handler.setLevel(console_level)

    root.info(f"Logging initialized. Log file: {log_path}")
    return directory


def _attach_file_handler(logger: logging.Logger, area: str) -> None:
    if _file_handler is None:
        return
    if any(isinstance(h, _HodoFileHandler) for h in logger.handlers):
        return
    handler = _HodoFileHandler(_file_handler.baseFilename, encoding="utf-8")
    handler.setLevel(_file_handler.level)
    handler.setFormatter(FileFormatter(area))
    logger.addHandler(handler)


def get_logger(area: str = "main") -> logging.Logger:
    """
    Logger for one application area, e.g. ``"licensing.gate"``.

    Example:
        logger = get_logger("licensing")
        logger.info("Private key loaded")
        # [HODO.licensing] 14:32:15 INFO     Private key loaded
    """
    logger = logging.getLogger(f"hodo.{area}")
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(ColoredConsoleFormatter(area))
    logger.addHandler(console)
    _attach_file_handler(logger, area)
    # Area handlers already cover the root's file; avoid writing twice
    logger.propagate = False
    return logger


def bind_context(logger: logging.Logger, context: RequestContext) -> ContextAdapter:
    """Return a logger that stamps every record with the request's context."""
    return ContextAdapter(logger, context.as_extra())

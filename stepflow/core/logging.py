"""Logging for stepflow runs.

Every record emitted while a run is in progress is stamped with the run it
belongs to and, while a step is executing, with that step's id and type.
The binding lives in a context variable, so concurrent runs on one event
loop each see their own run and step.
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

RUN_FIELDS = ("run_id", "workflow_id", "node_id", "node_type")

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [run=%(run_id)s step=%(node_id)s] %(message)s"

_run_context: ContextVar[Dict[str, Optional[str]]] = ContextVar("stepflow_run_context", default={})


def bind_run_context(run_id: str, workflow_id: Optional[str] = None) -> None:
    """Attach a run to all records logged from the current context."""
    _run_context.set({"run_id": run_id, "workflow_id": workflow_id})


def bind_step_context(node_id: str, node_type: Optional[str] = None) -> None:
    """Attach the executing step, keeping the bound run."""
    context = dict(_run_context.get())
    context.update(node_id=node_id, node_type=node_type)
    _run_context.set(context)


def unbind_step_context() -> None:
    context = dict(_run_context.get())
    context.pop("node_id", None)
    context.pop("node_type", None)
    _run_context.set(context)


def clear_logging_context() -> None:
    _run_context.set({})


def current_run_context() -> Dict[str, str]:
    """The bound run and step fields that have a value."""
    return {key: value for key, value in _run_context.get().items() if value is not None}


class RunContextFilter(logging.Filter):
    """Copies the bound run and step onto each record.

    The fields land both as record attributes, for plain format strings
    (``-`` when unbound), and in ``extra_fields`` for structured output.
    Fields passed explicitly through ``log_with_context`` win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = current_run_context()
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields is None:
            extra_fields = record.extra_fields = {}
        for key, value in context.items():
            extra_fields.setdefault(key, value)
        for key in RUN_FIELDS:
            setattr(record, key, extra_fields.get(key, "-"))
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with run and step fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "extra_fields", None) or {})

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    structured: bool = False,
    max_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure root logging for stepflow.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that also receives records, rotated by size
        log_format: Format string for plain-text output; may use run_id, workflow_id, node_id and node_type
        structured: Emit JSON lines instead of plain text
        max_size: Bytes before the log file rotates
        backup_count: Rotated files to keep

    Returns:
        Root logger instance
    """
    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(fmt=log_format or DEFAULT_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    run_filter = RunContextFilter()
    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(log_file, maxBytes=max_size, backupCount=backup_count))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(run_filter)
        root_logger.addHandler(handler)

    # SQL echo is controlled by database_echo, not the log level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, message: str, **fields):
    """Log a message with structured fields alongside the bound run context."""
    logger.log(level, message, extra={"extra_fields": fields})

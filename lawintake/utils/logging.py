"""Structured logging setup for the intake system."""

import contextlib
import contextvars
import functools
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

# Fields every record carries, so formats may reference them unconditionally
CONTEXT_FIELDS = ("component", "session_id", "claim")

# Per thread and per task; request handlers run in a threadpool
_log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("log_context", default={})


class ContextFilter(logging.Filter):
    """Copy the current log context (component, session id, claim type) onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in CONTEXT_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, "-")
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return True


def setup_logging(
    level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the root logger for the API and the Streamlit wizard.

    Args:
        level: Logging level name; unknown names fall back to INFO
        log_format: Format string; may use %(component)s, %(session_id)s and %(claim)s
        log_file: Optional UTF-8 log file, so Hebrew names stay readable

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(log_format)
    context_filter = ContextFilter()

    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    # boto, urllib3 and pdfminer flood DEBUG output
    for noisy in ("botocore", "boto3", "urllib3", "pdfminer"):
        logging.getLogger(noisy).setLevel(max(numeric_level, logging.WARNING))

    return root_logger


def set_context(**kwargs):
    """
    Add fields to the log context of the current thread or task.

    Example:
        set_context(session_id="DW-2025-AB12CD")
        logger.info("Resuming wizard")
    """
    _log_context.set({**_log_context.get(), **kwargs})


def clear_context():
    _log_context.set({})


@contextlib.contextmanager
def log_context(**kwargs) -> Iterator[None]:
    """Scope extra context fields to a block; the previous context is restored on exit."""
    token = _log_context.set({**_log_context.get(), **kwargs})
    try:
        yield
    finally:
        _log_context.reset(token)


def with_context(**context_kwargs):
    """
    Decorator form of log_context.

    Example:
        @with_context(component="reminders")
        def send_reminders(...):
            logger.info("Reminder run started")
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with log_context(**context_kwargs):
                return func(*args, **kwargs)

        return wrapper
    return decorator

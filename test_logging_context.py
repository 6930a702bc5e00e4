"""Tests for log context fields."""

import logging

from lawintake.utils.logging import ContextFilter, clear_context, log_context, set_context, with_context


def _record() -> logging.LogRecord:
    record = logging.LogRecord("lawintake", logging.INFO, __file__, 1, "message", None, None)
    ContextFilter().filter(record)
    return record


def test_defaults_are_placeholders():
    clear_context()
    record = _record()
    assert (record.component, record.session_id, record.claim) == ("-", "-", "-")


def test_log_context_is_scoped():
    clear_context()
    set_context(session_id="DW-2025-AB12CD")
    with log_context(claim="property"):
        record = _record()
        assert record.claim == "property"
        assert record.session_id == "DW-2025-AB12CD"
    assert _record().claim == "-"
    clear_context()


def test_with_context_restores_on_error():
    clear_context()

    @with_context(component="reminders")
    def failing():
        assert _record().component == "reminders"
        raise RuntimeError("boom")

    try:
        failing()
    except RuntimeError:
        pass
    assert _record().component == "-"

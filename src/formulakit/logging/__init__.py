"""Structured event logging for formulakit.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from formulakit.logging.events import (
    EventLevel,
    EventType,
    FormulakitEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    make_batch_event,
    reset_sink,
    set_project_dir,
    truncate_context,
)
from formulakit.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "FormulakitEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "make_batch_event",
    "reset_sink",
    "set_project_dir",
    "truncate_context",
]

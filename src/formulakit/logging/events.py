"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
swallowed and printed to stderr.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Single formula
    eval_completed = "eval_completed"
    eval_failed = "eval_failed"
    validate_completed = "validate_completed"
    formula_invalid = "formula_invalid"

    # Batch lifecycle
    batch_started = "batch_started"
    batch_completed = "batch_completed"
    batch_row_error = "batch_row_error"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

FORMULA_SYNTAX_ERROR = "formula_syntax_error"
FORMULA_EVAL_ERROR = "formula_eval_error"
BATCH_INVALID_OPTIONS = "batch_invalid_options"
BATCH_MISSING_COLUMNS = "batch_missing_columns"
BATCH_ROW_FAILED = "batch_row_failed"


# ---------------------------------------------------------------------------
# Context sanitising
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 256


def truncate_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* with long string values truncated.

    Formulas and error messages are user input; anything longer than 256
    characters is cut and suffixed with ``...[truncated]``.
    """
    out: dict[str, Any] = {}
    for k, v in context.items():
        out[k] = _truncate_value(v)
    return out


def _truncate_value(v: Any) -> Any:
    if isinstance(v, dict):
        return truncate_context(v)
    if isinstance(v, list):
        return [_truncate_value(item) for item in v]
    if isinstance(v, str) and len(v) > _MAX_VALUE_LEN:
        return v[:_MAX_VALUE_LEN] + "...[truncated]"
    return v


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class FormulakitEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


def make_batch_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    batch_id: str,
    formula: str | None = None,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> FormulakitEvent:
    """Build an event with guaranteed batch attribution context."""
    ctx: dict[str, Any] = {"batch_id": batch_id}
    if formula is not None:
        ctx["formula"] = formula
    if extra:
        ctx.update(extra)
    return FormulakitEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=ctx,
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Lazily initialised when ``set_project_dir`` is called.
_sink: Any = None  # EventSink | None


def set_project_dir(project_dir: Any) -> None:
    """Configure the module-level event sink for a project directory.

    Called early by the CLI.  If it is never called, or the project config
    sets ``logging.enabled: false``, ``emit()`` silently discards events.
    """
    global _sink
    from pathlib import Path

    from formulakit.logging.sink import EventSink
    from formulakit.project import load_project_config

    cfg = load_project_config(Path(project_dir))
    if not cfg.get("logging_enabled", True):
        _sink = None
        return

    tb = cfg.get("logging_tail_bytes")
    _sink = EventSink(
        Path(project_dir),
        fsync=bool(cfg.get("logging_fsync", False)),
        tail_bytes=int(tb) if tb is not None else None,
    )


def reset_sink() -> None:
    """Detach the module-level sink (events are discarded again)."""
    global _sink
    _sink = None


def _get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float = 0.0
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[formulakit] {msg}", file=sys.stderr)
    except Exception:
        pass


# ---------------------------------------------------------------------------
# Safe emit helpers
# ---------------------------------------------------------------------------


def emit(event: FormulakitEvent, *, batch_id: str | None = None) -> None:
    """Write an event to the global log and optionally to a per-batch log.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.
    """
    try:
        sink = _get_sink()
        if sink is None:
            return
        event = event.model_copy(update={"context": truncate_context(event.context)})
        sink.write(event, batch_id=batch_id)
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def emit_info(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    batch_id: str | None = None,
) -> None:
    """Convenience: emit an info-level event."""
    emit(
        FormulakitEvent(
            level=EventLevel.info,
            event_type=event_type,
            message=message,
            context=context or {},
        ),
        batch_id=batch_id,
    )


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    batch_id: str | None = None,
) -> None:
    """Convenience: emit a warning-level event."""
    emit(
        FormulakitEvent(
            level=EventLevel.warning,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        ),
        batch_id=batch_id,
    )


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    batch_id: str | None = None,
) -> None:
    """Convenience: emit an error-level event."""
    emit(
        FormulakitEvent(
            level=EventLevel.error,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        ),
        batch_id=batch_id,
    )

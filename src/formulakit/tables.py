"""Evaluate one formula across the rows of a Polars DataFrame.

Each row supplies a named binding: columns whose names match the formula's
variables provide the values, other columns are carried through untouched.
The formula is tokenized and converted to postfix once per frame.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from uuid import uuid4

import polars as pl

from formulakit.formulas import (
    FormulaError,
    FormulaEvaluationError,
    evaluate_postfix,
    extract_variables,
    to_postfix,
    tokenize,
)
from formulakit.logging.events import (
    BATCH_INVALID_OPTIONS,
    BATCH_MISSING_COLUMNS,
    BATCH_ROW_FAILED,
    FORMULA_SYNTAX_ERROR,
    EventLevel,
    EventType,
    emit,
    make_batch_event,
)

ERROR_COLUMN = "error"


class MissingColumnsError(FormulaError):
    """The frame lacks a column for one or more formula variables.

    Attributes:
        missing: Variable names with no matching column.
    """

    def __init__(self, missing: list[str], columns: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing columns for variables {missing}. Available: {columns}")


class RowEvaluationError(FormulaError):
    """A single row failed to evaluate.

    Attributes:
        row: 0-based row index within the frame.
        cause: The underlying error.
    """

    def __init__(self, row: int, cause: Exception) -> None:
        self.row = row
        self.cause = cause
        super().__init__(f"Row {row}: {cause}")


def load_values_csv(path: Path) -> pl.DataFrame:
    """Load a CSV of variable values (one column per variable)."""
    return pl.read_csv(path)


def evaluate_frame(
    formula: str,
    frame: pl.DataFrame,
    *,
    result_column: str = "result",
    on_error: str = "raise",
) -> pl.DataFrame:
    """Evaluate *formula* for every row of *frame*.

    Args:
        formula: Formula text.
        frame: One column per variable; nulls count as missing values.
        result_column: Name of the appended Float64 column.
        on_error: ``"raise"`` to stop at the first failing row, ``"null"``
            to store null and record the message in an ``error`` column.

    Returns:
        *frame* with the result column (and ``error`` column in null mode).

    Raises:
        FormulaEvaluationError: The formula itself does not parse.
        MissingColumnsError: A variable has no matching column.
        RowEvaluationError: A row failed and ``on_error`` is ``"raise"``.
        ValueError: Bad ``on_error``, a result column that shadows a variable,
            or (in null mode) a clash with the ``error`` column.
    """
    if on_error not in ("raise", "null"):
        raise ValueError(f"on_error must be 'raise' or 'null', got {on_error!r}")

    variables = extract_variables(formula)
    if result_column in variables:
        raise ValueError(f"Result column {result_column!r} collides with a formula variable")
    if on_error == "null":
        if result_column == ERROR_COLUMN:
            raise ValueError(f"Result column cannot be {ERROR_COLUMN!r} when on_error is 'null'")
        if ERROR_COLUMN in frame.columns:
            raise ValueError(
                f"Frame already has an {ERROR_COLUMN!r} column; on_error 'null' would overwrite it"
            )

    try:
        postfix = to_postfix(tokenize(formula))
    except FormulaError as exc:
        raise FormulaEvaluationError(exc) from exc

    missing = [v for v in variables if v not in frame.columns]
    if missing:
        raise MissingColumnsError(missing, frame.columns)

    if variables:
        rows = frame.select(variables).iter_rows(named=True)
    else:
        rows = ({} for _ in range(frame.height))

    results: list[float | None] = []
    errors: list[str | None] = []
    for i, row in enumerate(rows):
        assignment = {k: v for k, v in row.items() if v is not None}
        try:
            results.append(evaluate_postfix(postfix, assignment))
            errors.append(None)
        except FormulaError as exc:
            if on_error == "raise":
                raise RowEvaluationError(i, exc) from exc
            results.append(None)
            errors.append(str(exc))

    out = frame.with_columns(pl.Series(result_column, results, dtype=pl.Float64))
    if on_error == "null":
        out = out.with_columns(pl.Series(ERROR_COLUMN, errors, dtype=pl.Utf8))
    return out


def _batch_error_code(exc: Exception) -> str:
    if isinstance(exc, MissingColumnsError):
        return BATCH_MISSING_COLUMNS
    if isinstance(exc, FormulaEvaluationError):
        return FORMULA_SYNTAX_ERROR
    if isinstance(exc, FormulaError):
        return BATCH_ROW_FAILED
    return BATCH_INVALID_OPTIONS


def run_batch(
    formula: str,
    values_path: Path,
    *,
    output_path: Path | None = None,
    result_column: str = "result",
    on_error: str = "raise",
) -> dict[str, Any]:
    """Evaluate *formula* over a CSV of values and optionally write the result.

    Emits ``batch_started`` / ``batch_completed`` events (and one
    ``batch_row_error`` per failed row in null mode) to the configured sink.

    Returns:
        Summary dict with ``batch_id``, ``rows``, ``ok``, ``failed``,
        ``output`` and the result ``frame``.
    """
    batch_id = str(uuid4())
    frame = load_values_csv(values_path)

    emit(
        make_batch_event(
            EventType.batch_started,
            EventLevel.info,
            f"Batch started: {frame.height} rows",
            batch_id=batch_id,
            formula=formula,
            extra={"rows": frame.height, "source": str(values_path)},
        ),
        batch_id=batch_id,
    )

    try:
        result = evaluate_frame(
            formula, frame, result_column=result_column, on_error=on_error
        )
    except (FormulaError, ValueError) as exc:
        code = _batch_error_code(exc)
        emit(
            make_batch_event(
                EventType.batch_completed,
                EventLevel.error,
                f"Batch failed: {exc}",
                batch_id=batch_id,
                formula=formula,
                error_code=code,
            ),
            batch_id=batch_id,
        )
        raise

    failed = 0
    if on_error == "null":
        for i, message in enumerate(result[ERROR_COLUMN].to_list()):
            if message is None:
                continue
            failed += 1
            emit(
                make_batch_event(
                    EventType.batch_row_error,
                    EventLevel.warning,
                    message,
                    batch_id=batch_id,
                    error_code=BATCH_ROW_FAILED,
                    extra={"row": i},
                ),
                batch_id=batch_id,
            )

    if output_path is not None:
        result.write_csv(output_path)

    ok = result.height - failed
    emit(
        make_batch_event(
            EventType.batch_completed,
            EventLevel.info if failed == 0 else EventLevel.warning,
            f"Batch completed: {ok} ok, {failed} failed",
            batch_id=batch_id,
            formula=formula,
            extra={"rows": result.height, "ok": ok, "failed": failed},
        ),
        batch_id=batch_id,
    )

    return {
        "batch_id": batch_id,
        "rows": result.height,
        "ok": ok,
        "failed": failed,
        "output": str(output_path) if output_path is not None else None,
        "frame": result,
    }

"""Command-line interface for formulakit."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from formulakit import __version__


@click.group()
@click.version_option(version=__version__, prog_name="formulakit")
def main() -> None:
    """formulakit -- parse, validate and evaluate arithmetic formulas.

    Formulas use letter/underscore variable names, numbers, + - * / ^,
    sqrt(...) and parentheses.  Note that ^ is left-associative:
    2 ^ 3 ^ 2 evaluates as (2 ^ 3) ^ 2.
    """


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_assignments(items: tuple[str, ...]) -> dict[str, float]:
    assignment: dict[str, float] = {}
    for item in items:
        if "=" not in item:
            raise click.ClickException(f"Invalid --set format: {item!r}. Use name=value.")
        k, v = item.split("=", 1)
        try:
            assignment[k.strip()] = float(v)
        except ValueError:
            raise click.ClickException(f"Invalid number for {k.strip()!r}: {v!r}")
    return assignment


def _load_config(directory: str) -> dict:
    from formulakit.logging import set_project_dir
    from formulakit.project import load_project_config

    try:
        cfg = load_project_config(Path(directory))
        set_project_dir(Path(directory))
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Invalid project config: {e}")
    return cfg


# ---------------------------------------------------------------------------
# Init
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", default=".", type=click.Path())
def init(directory: str) -> None:
    """Write a default formulakit.yaml into DIRECTORY."""
    from formulakit.project import init_project

    try:
        path = init_project(Path(directory))
    except FileExistsError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created {path}")


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


@main.command("vars")
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def vars_cmd(formula: str, as_json: bool) -> None:
    """List the variables of FORMULA in binding order."""
    from formulakit.formulas import get_variables

    names = get_variables(formula)
    if as_json:
        click.echo(json.dumps(names))
        return
    for name in names:
        click.echo(name)


@main.command()
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def tokens(formula: str, as_json: bool) -> None:
    """Show the tokens of FORMULA."""
    from formulakit.formulas import FormulaError, tokenize

    try:
        toks = tokenize(formula)
    except FormulaError as e:
        raise click.ClickException(str(e))

    if as_json:
        out = [{"type": t.type, "value": str(t), "position": t.start_pos} for t in toks]
        click.echo(json.dumps(out, indent=2))
        return
    for t in toks:
        click.echo(f"{t.start_pos:>4}  {t.type:<8s} {t}")


@main.command()
@click.argument("formula")
def postfix(formula: str) -> None:
    """Show FORMULA in Reverse Polish order."""
    from formulakit.formulas import FormulaError, to_postfix, tokenize

    try:
        out = to_postfix(tokenize(formula))
    except FormulaError as e:
        raise click.ClickException(str(e))
    click.echo(" ".join(str(t) for t in out))


@main.command()
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output the tree as JSON.")
def ast(formula: str, as_json: bool) -> None:
    """Show the expression tree of FORMULA."""
    from formulakit.formulas import FormulaError, ast_to_dict, format_ast, pretty_ast, to_ast

    try:
        tree = to_ast(formula)
    except FormulaError as e:
        raise click.ClickException(str(e))

    if as_json:
        try:
            click.echo(json.dumps(ast_to_dict(tree), indent=2))
        except RecursionError:
            raise click.ClickException("Expression is nested too deeply for JSON output")
    else:
        click.echo(format_ast(tree))
        click.echo(pretty_ast(tree))


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.argument("values", nargs=-1, type=float)
@click.option("--set", "assignments", multiple=True, help="Bind a variable by name as name=value.")
@click.option("--project", "directory", default=".", type=click.Path(exists=True), help="Project directory.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def eval_cmd(
    formula: str,
    values: tuple[float, ...],
    assignments: tuple[str, ...],
    directory: str,
    as_json: bool,
) -> None:
    """Evaluate FORMULA.

    VALUES bind positionally to the variables in sorted name order
    (see `formulakit vars`).  Use --set name=value to bind by name
    instead.  Put `--` before negative values.
    """
    from formulakit.formulas import (
        FormulaEvaluationError,
        evaluate,
        evaluate_named,
        extract_variables,
    )
    from formulakit.formulas.errors import FormulaParseError, FormulaTokenError
    from formulakit.logging import EventType, emit_error, emit_info
    from formulakit.logging.events import FORMULA_EVAL_ERROR, FORMULA_SYNTAX_ERROR
    from formulakit.project import format_value

    if values and assignments:
        raise click.ClickException("Use either positional VALUES or --set, not both.")

    cfg = _load_config(directory)

    try:
        if assignments:
            named = _parse_assignments(assignments)
            result = evaluate_named(formula, named)
            variables = extract_variables(formula)
        else:
            outcome = evaluate(formula, list(values))
            result, variables = outcome.result, outcome.variables
    except FormulaEvaluationError as e:
        emit_error(
            EventType.eval_failed,
            str(e),
            {"formula": formula, "cause": type(e.cause).__name__},
            error_code=(
                FORMULA_SYNTAX_ERROR
                if isinstance(e.cause, (FormulaTokenError, FormulaParseError))
                else FORMULA_EVAL_ERROR
            ),
        )
        raise click.ClickException(str(e))

    emit_info(
        EventType.eval_completed,
        "Formula evaluated",
        {"formula": formula, "variables": variables, "result": result},
    )

    if as_json:
        click.echo(json.dumps({"result": result, "variables": variables}))
    else:
        click.echo(format_value(result, cfg["precision"]))


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------


@main.command()
@click.argument("formulas", nargs=-1, required=True)
@click.option("--explain", is_flag=True, help="Print the reasons a formula is invalid.")
@click.option("--project", "directory", default=".", type=click.Path(exists=True), help="Project directory.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def validate(formulas: tuple[str, ...], explain: bool, directory: str, as_json: bool) -> None:
    """Check that each FORMULA is well-formed.  Exits 1 if any is invalid."""
    from formulakit.formulas import validation_errors
    from formulakit.logging import EventType, emit_info, emit_warning
    from formulakit.logging.events import FORMULA_SYNTAX_ERROR

    _load_config(directory)

    report = []
    for formula in formulas:
        errors = validation_errors(formula)
        report.append({"formula": formula, "valid": not errors, "errors": errors})
        if errors:
            emit_warning(
                EventType.formula_invalid,
                errors[0],
                {"formula": formula, "errors": errors},
                error_code=FORMULA_SYNTAX_ERROR,
            )

    invalid = sum(1 for r in report if not r["valid"])
    emit_info(
        EventType.validate_completed,
        f"Validated {len(report)} formula(s), {invalid} invalid",
        {"total": len(report), "invalid": invalid},
    )

    if as_json:
        click.echo(json.dumps(report, indent=2))
    else:
        for r in report:
            status = "OK     " if r["valid"] else "INVALID"
            click.echo(f"{status} {r['formula']}")
            if explain:
                for err in r["errors"]:
                    click.echo(f"        - {err}")

    if invalid:
        sys.exit(1)


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


@main.command()
@click.argument("formula")
@click.argument("values_file", type=click.Path(exists=True))
@click.option("--output", "output_file", default=None, type=click.Path(), help="Write the result CSV here.")
@click.option("--result-column", default=None, help="Name of the result column.")
@click.option("--on-error", type=click.Choice(["raise", "null"]), default=None, help="Stop at the first failing row, or store null.")
@click.option("--project", "directory", default=".", type=click.Path(exists=True), help="Project directory.")
def batch(
    formula: str,
    values_file: str,
    output_file: str | None,
    result_column: str | None,
    on_error: str | None,
    directory: str,
) -> None:
    """Evaluate FORMULA once per row of VALUES_FILE (CSV, one column per variable)."""
    from formulakit.formulas import FormulaError
    from formulakit.tables import run_batch

    cfg = _load_config(directory)

    try:
        summary = run_batch(
            formula,
            Path(values_file),
            output_path=Path(output_file) if output_file else None,
            result_column=result_column or cfg["result_column"],
            on_error=on_error or cfg["on_error"],
        )
    except (FormulaError, ValueError) as e:
        raise click.ClickException(str(e))

    click.echo(f"Batch ID: {summary['batch_id']}")
    click.echo(f"Rows: {summary['rows']}  OK: {summary['ok']}  Failed: {summary['failed']}")
    if summary["output"]:
        click.echo(f"Wrote {summary['output']}")
    else:
        click.echo(str(summary["frame"]))


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------


@main.command()
@click.option("--project", "directory", default=".", type=click.Path(exists=True), help="Project directory.")
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--batch-id", default=None, help="Show the log of one batch.")
@click.option("--batches", "list_batches", is_flag=True, help="List the ids of logged batches.")
@click.option("--limit", default=50, type=int, help="Max events to show.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def logs(
    directory: str,
    level: str | None,
    event_type: str | None,
    batch_id: str | None,
    list_batches: bool,
    limit: int,
    as_json: bool,
) -> None:
    """Show the structured event log, most recent first."""
    from formulakit.logging.sink import EventSink, is_valid_batch_id
    from formulakit.project import load_project_config

    try:
        cfg = load_project_config(Path(directory))
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Invalid project config: {e}")
    sink = EventSink(Path(directory), tail_bytes=cfg["logging_tail_bytes"])

    if list_batches:
        ids = sink.list_batches()[:limit]
        if as_json:
            click.echo(json.dumps(ids))
        elif not ids:
            click.echo("No batches found.")
        else:
            for bid in ids:
                click.echo(bid)
        return

    if batch_id is not None and not is_valid_batch_id(batch_id):
        raise click.ClickException(f"Invalid batch id: {batch_id!r}")

    events = sink.query(
        level=level,
        event_type=event_type,
        batch_id=batch_id,
        limit=limit,
    )

    if as_json:
        click.echo(json.dumps(events, indent=2))
        return

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)


if __name__ == "__main__":
    main()
